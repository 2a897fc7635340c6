"""
CampusNav - camera-guided campus navigation assistant

Interactive console front end: identify where you are from a photo, pick
or scan a destination, then walk the route step by step.
"""

import argparse
import signal
import sys
from pathlib import Path
from typing import Optional

from campusnav.camera import FrameCapture, FrameCaptureError, load_image
from campusnav.campus import CampusConfigError, CampusGraph, load_campus, path_distance
from campusnav.config.settings import get_settings
from campusnav.gemini import (
    GeminiArrivalVerifier,
    GeminiCampusClassifier,
    GeminiClient,
    GeminiClientError,
    GeminiInstructionGenerator,
    GeminiSpeechSynthesizer,
    build_system_prompt,
)
from campusnav.motion import MovementFeed, SimulatedSensorSource
from campusnav.navigation import Channel, NavigationCoordinator, NavigationIssue, Role
from campusnav.navigation.collaborators import SensorSource
from campusnav.rendering import render_map, save_map
from campusnav.utils.logger import setup_logger

HELP_TEXT = """Commands:
  locate <image|camera>   identify where you are
  scan <image|camera>     identify a destination from a sign
  here <node>             set your location by id or name
  dest <node>             set your destination by id or name
  yes <locate|dest>       confirm an uncertain detection
  no <locate|dest>        dismiss an uncertain detection
  next                    advance to the next step
  arrive <image|camera>   confirm arrival with a photo
  reset                   clear the current trip
  status                  show the session
  map <file.png>          save the campus map with the route
  nodes                   list campus locations
  quit                    exit"""

ROLE_NAMES = {"locate": Role.LOCATE, "dest": Role.DESTINATION, "destination": Role.DESTINATION}


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="CampusNav - camera-guided campus navigation assistant"
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to config.yaml'
    )
    parser.add_argument(
        '--campus',
        type=Path,
        default=None,
        help='Campus graph YAML (overrides campus.graph_file)'
    )
    parser.add_argument(
        '--simulate-sensors',
        action='store_true',
        help='Feed synthetic heading/acceleration instead of a real sensor'
    )
    parser.add_argument(
        '--response-timeout',
        type=float,
        default=60.0,
        help='Seconds to wait for each Gemini answer'
    )
    return parser.parse_args()


class CampusNavApp:
    """Console application wiring the navigator to Gemini and the camera."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        campus_path: Optional[Path] = None,
        simulate_sensors: bool = False,
        response_timeout: float = 60.0
    ):
        self.settings = get_settings(config_path)

        self.logger = setup_logger(
            level=self.settings.logging.level,
            fmt=self.settings.logging.format,
            use_colors=self.settings.logging.console_colors,
            log_file=self.settings.logging.file
        )

        self.campus_path = campus_path or self.settings.campus.graph_path
        self.simulate_sensors = simulate_sensors
        self.response_timeout = response_timeout

        self.graph: Optional[CampusGraph] = None
        self.navigator: Optional[NavigationCoordinator] = None
        self.camera: Optional[FrameCapture] = None
        self.sensor_source: Optional[SensorSource] = None
        self._feedback_seen = 0
        self.running = False

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            self.logger.info(f"\nReceived signal {signum}, shutting down...")
            self.running = False
            # input() would otherwise keep blocking
            raise KeyboardInterrupt

        signal.signal(signal.SIGTERM, signal_handler)

    def initialize(self) -> bool:
        """
        Load the campus and connect to Gemini.

        Returns:
            True if successful, False otherwise.
        """
        try:
            self.graph = load_campus(self.campus_path)

            gemini_cfg = self.settings.gemini
            client = GeminiClient(
                api_key=gemini_cfg.api_key,
                model=gemini_cfg.model,
                max_retries=gemini_cfg.max_retries,
                system_instruction=build_system_prompt(self.graph)
            )

            speech_cfg = self.settings.speech
            synthesizer = None
            if speech_cfg.enabled:
                synthesizer = GeminiSpeechSynthesizer(client, speech_cfg.model, speech_cfg.voice)

            motion_cfg = self.settings.motion
            self.navigator = NavigationCoordinator(
                graph=self.graph,
                classifier=GeminiCampusClassifier(client, self.graph),
                verifier=GeminiArrivalVerifier(client),
                instruction_generator=GeminiInstructionGenerator(client),
                synthesizer=synthesizer,
                navigation_config=self.settings.navigation,
                speech_config=speech_cfg,
                movement_feed=MovementFeed(
                    acceleration_threshold=motion_cfg.acceleration_threshold,
                    window_size=motion_cfg.window_size,
                    speed_gain=motion_cfg.speed_gain
                ),
            )

            if self.simulate_sensors:
                self.sensor_source = SimulatedSensorSource()
                self.logger.info("Using simulated sensors")

            return True

        except CampusConfigError as e:
            self.logger.error(f"Campus graph invalid: {e}")
            return False
        except (GeminiClientError, ValueError) as e:
            self.logger.error(f"Gemini initialization failed: {e}")
            return False

    def _image(self, source: str) -> Optional[bytes]:
        """Image bytes from a file path or the camera."""
        try:
            if source == "camera":
                if self.camera is None:
                    camera = FrameCapture(
                        device_index=self.settings.camera.device_index,
                        jpeg_quality=self.settings.camera.jpeg_quality
                    )
                    camera.open()
                    self.camera = camera
                return self.camera.capture()
            return load_image(Path(source), self.settings.camera.jpeg_quality)
        except FrameCaptureError as e:
            print(f"  ! {e}")
            return None

    def _resolve_node(self, text: str) -> Optional[str]:
        node = self.graph.find_node(text)
        if node is None:
            print(f"  ! Unknown place '{text}'. Use 'nodes' to list them.")
            return None
        return node.id

    def _wait(self, channel: Channel, generation: int) -> None:
        """Block until the answer to the request just sent arrives."""
        instructions = self.navigator.generation(Channel.INSTRUCTIONS)
        if not self.navigator.wait_for(channel, generation, self.response_timeout):
            print("  ! No answer yet, it will show up when it arrives.")
            return
        self._await_instructions(instructions)

    def _await_instructions(self, generation: int) -> None:
        """Wait for walking instructions if a new route requested them."""
        current = self.navigator.generation(Channel.INSTRUCTIONS)
        if current != generation:
            self.navigator.wait_for(Channel.INSTRUCTIONS, current, self.response_timeout)

    def _print_feedback(self) -> None:
        log = self.navigator.feedback
        for message in log.since(self._feedback_seen):
            marker = "?" if message.issue == NavigationIssue.LOW_CONFIDENCE else ">"
            print(f"  {marker} {message.text}")
        self._feedback_seen = log.total

    def _print_status(self) -> None:
        snap = self.navigator.snapshot()
        state = "idle (waiting for your location)" if snap.awaiting_location else snap.state.value
        print(f"  State:       {state}")
        print(f"  Location:    {self.graph.name_of(snap.current_location_id) or '-'}")
        print(f"  Destination: {self.graph.name_of(snap.destination_id) or '-'}")
        print(f"  Arrival:     {snap.arrival_status.value}")
        print(f"  Movement:    {self.navigator.movement.status.value} "
              f"(bearing {self.navigator.movement.bearing:.0f}, speed {self.navigator.movement.speed:.2f})")
        if snap.path:
            total = path_distance(self.graph, snap.path)
            print(f"  Route:       {' -> '.join(self.graph.names(snap.path))} ({total:.0f} m)")
            for i, step in enumerate(self.navigator.session.steps()):
                marker = "=>" if i == snap.step_index else "  "
                extra = f" [{step.distance}]" if step.distance else ""
                print(f"   {marker} {i + 1}. {step.instruction}{extra}")
        for role in snap.pending_roles:
            pending = self.navigator.pending(role)
            print(f"  Pending {role.value}: {self.graph.name_of(pending.node_id)} "
                  f"({pending.confidence:.0%})")

    def handle_command(self, line: str) -> bool:
        """
        Run one console command.

        Returns:
            False when the user asked to quit.
        """
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return True
        command = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""
        nav = self.navigator

        if command in ("quit", "exit", "q"):
            return False
        elif command == "help":
            print(HELP_TEXT)
        elif command in ("locate", "scan", "arrive"):
            if not arg:
                print(f"  ! Usage: {command} <image|camera>")
                return True
            image = self._image(arg)
            if image is None:
                return True
            if command == "locate":
                channel, generation = Channel.LOCATE, nav.capture_location(image)
            elif command == "scan":
                channel, generation = Channel.DESTINATION, nav.capture_destination(image)
            else:
                channel, generation = Channel.ARRIVAL, nav.verify_arrival(image)
                if generation is None:
                    self._print_feedback()
                    return True
            print("  ... asking Gemini")
            self._wait(channel, generation)
        elif command in ("here", "dest"):
            node_id = self._resolve_node(arg)
            if node_id:
                instructions = nav.generation(Channel.INSTRUCTIONS)
                if command == "here":
                    nav.set_location(node_id)
                else:
                    nav.set_destination(node_id)
                self._await_instructions(instructions)
        elif command in ("yes", "no"):
            role = ROLE_NAMES.get(arg.lower() or "locate")
            if role is None:
                print("  ! Usage: yes|no <locate|dest>")
                return True
            instructions = nav.generation(Channel.INSTRUCTIONS)
            if command == "yes":
                nav.confirm_pending(role)
            else:
                nav.dismiss_pending(role)
            self._await_instructions(instructions)
        elif command == "next":
            nav.advance_step()
        elif command == "reset":
            nav.reset()
        elif command == "status":
            self._print_status()
        elif command == "map":
            out = arg or "campus_map.png"
            if save_map(out, render_map(self.graph, nav.snapshot())):
                print(f"  Map saved to {out}")
            else:
                print(f"  ! Could not write {out}")
        elif command == "nodes":
            for node in self.graph.nodes:
                print(f"  {node.id:<12} {node.name} ({node.category.value})")
        else:
            print(f"  ! Unknown command '{command}'. Type 'help'.")

        # Pick up anything that finished in the background meanwhile
        nav.process_responses()
        self._print_feedback()
        return True

    def run_console(self) -> None:
        """Read-eval loop; one command at a time."""
        self.logger.info("=" * 60)
        self.logger.info("CampusNav - campus navigation assistant")
        self.logger.info("=" * 60)
        print(HELP_TEXT)

        self.running = True
        while self.running:
            if self.sensor_source is not None:
                self.navigator.on_sensor_sample(self.sensor_source.read())
            self.navigator.tick()

            try:
                line = input("campusnav> ")
            except EOFError:
                break

            if not self.handle_command(line):
                break

    def cleanup(self) -> None:
        """Cleanup all resources."""
        self.logger.info("Cleaning up resources...")
        if self.camera:
            self.camera.close()
        if self.navigator:
            self.navigator.shutdown()
        self.logger.info("Cleanup complete")

    def run(self) -> int:
        """
        Run the application.

        Returns:
            Exit code (0 = success, 1 = error).
        """
        self.setup_signal_handlers()

        if not self.initialize():
            self.logger.error("Initialization failed")
            return 1

        try:
            self.run_console()
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down...")
        finally:
            self.cleanup()

        self.logger.info("CampusNav terminated")
        return 0


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args()
    app = CampusNavApp(
        config_path=args.config,
        campus_path=args.campus,
        simulate_sensors=args.simulate_sensors,
        response_timeout=args.response_timeout
    )
    return app.run()


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
