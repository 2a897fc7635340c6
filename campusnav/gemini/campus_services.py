"""Gemini-backed classifier, arrival verifier, instruction writer and voice."""

from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from .gemini_client import GeminiClient
from campusnav.campus import CampusGraph
from campusnav.navigation.nav_types import ArrivalVerdict, DetectionResult, Role
from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


class LocationAnswer(BaseModel):
    """Schema the classifier must answer with."""
    location_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    description: str = ""


class ArrivalAnswer(BaseModel):
    """Schema the arrival verifier must answer with."""
    arrived: bool
    confidence: float = Field(ge=0.0, le=1.0)


class InstructionsAnswer(BaseModel):
    """Schema the instruction writer must answer with."""
    instructions: List[str]


def build_system_prompt(graph: CampusGraph) -> str:
    """
    System prompt naming every campus location.

    Args:
        graph: Campus graph.

    Returns:
        Prompt text.
    """
    names = ", ".join(node.name for node in graph.nodes)
    return f"""You are a Campus Navigation Assistant.
You are given a map of nodes: {names}.
Your job is to identify a location from an image and provide navigation instructions.
If identifying from an image, analyze landmarks like signage, building colors, and surroundings.
When providing directions, use a helpful, student-friendly tone.
Always refer to the nodes by their official names."""


def _location_list(graph: CampusGraph) -> str:
    return "\n".join(
        f"  {node.id}: {node.name} ({node.category.value}) - {node.description}"
        for node in graph.nodes
    )


class GeminiCampusClassifier:
    """Identifies campus locations in photos."""

    def __init__(self, client: GeminiClient, graph: CampusGraph):
        """
        Args:
            client: Shared Gemini client.
            graph: Campus graph with the candidate locations.
        """
        self.client = client
        self.graph = graph

    def build_prompt(self, role: Role) -> str:
        """Prompt for a locate or destination capture."""
        if role == Role.LOCATE:
            task = "Identify which campus location this photo was taken at."
        else:
            task = (
                "This photo shows a sign, room number, office plaque or building "
                "entrance the user wants to go to. Identify which campus location it refers to."
            )
        return f"""{task}

Choose from these locations:
{_location_list(self.graph)}

Return JSON with "location_id" (the internal ID), "confidence" (0-1),
and a brief "description" of why you think so."""

    def classify(self, image_bytes: bytes, role: Role) -> Optional[DetectionResult]:
        """
        Classify a photo.

        Returns:
            DetectionResult with a graph node id, or None if the model failed,
            answered malformed JSON, or named a place not on the map.
        """
        text, elapsed_ms = self.client.generate_with_retry(
            self.build_prompt(role), image_bytes=image_bytes, response_schema=LocationAnswer
        )
        if not text:
            return None

        try:
            answer = LocationAnswer.model_validate_json(text)
        except ValidationError as e:
            logger.warning(f"[GEMINI] Malformed classification: {e}")
            return None

        # Models sometimes answer with the display name instead of the id
        node = self.graph.find_node(answer.location_id)
        if node is None:
            logger.warning(f"[GEMINI] Unknown location '{answer.location_id}'")
            return None

        logger.info(
            f"[GEMINI] {role.value}: {node.id} ({answer.confidence:.2f}, {elapsed_ms:.0f}ms)"
        )
        return DetectionResult(
            node_id=node.id,
            confidence=answer.confidence,
            rationale=answer.description,
        )


class GeminiArrivalVerifier:
    """Checks whether a photo was taken at the destination."""

    def __init__(self, client: GeminiClient):
        self.client = client

    def verify_arrival(self, image_bytes: bytes, destination_name: str) -> ArrivalVerdict:
        """
        Ask whether the photo shows the destination.

        Returns:
            Verdict; a failed call counts as not arrived with zero confidence.
        """
        prompt = f"""The user believes they have arrived at the {destination_name}.
Does this photo show the {destination_name} or its entrance?
Return JSON with "arrived" (true/false) and "confidence" (0-1)."""

        text, _ = self.client.generate_with_retry(
            prompt, image_bytes=image_bytes, response_schema=ArrivalAnswer
        )
        if not text:
            return ArrivalVerdict(arrived=False, confidence=0.0)

        try:
            answer = ArrivalAnswer.model_validate_json(text)
        except ValidationError as e:
            logger.warning(f"[GEMINI] Malformed arrival answer: {e}")
            return ArrivalVerdict(arrived=False, confidence=0.0)

        return ArrivalVerdict(arrived=answer.arrived, confidence=answer.confidence)


class GeminiInstructionGenerator:
    """Writes landmark-based walking instructions for a route."""

    def __init__(self, client: GeminiClient):
        self.client = client

    def instructions(self, path_node_names: Sequence[str], verbose: bool) -> List[str]:
        """
        Walking instructions for the route.

        Args:
            path_node_names: Display names from start to destination.
            verbose: Detailed, landmark-rich guidance for low-vision users.

        Returns:
            Instruction lines; empty on failure.
        """
        if len(path_node_names) < 2:
            return []

        if verbose:
            style = (
                "Give detailed instructions suitable for a visually impaired walker: "
                "mention landmarks, surfaces, stairs and approximate distances."
            )
        else:
            style = "Keep each instruction to one short sentence."

        prompt = f"""I am currently at {path_node_names[0]} and want to go to {path_node_names[-1]}.
The suggested path is: {' -> '.join(path_node_names)}.
Give one instruction per leg of the route, with helpful tips or landmarks I should look for.
{style}
Return JSON with "instructions" (a list of strings)."""

        text, _ = self.client.generate_with_retry(prompt, response_schema=InstructionsAnswer)
        if not text:
            return []

        try:
            answer = InstructionsAnswer.model_validate_json(text)
        except ValidationError as e:
            logger.warning(f"[GEMINI] Malformed instructions: {e}")
            return []

        return [line.strip() for line in answer.instructions if line.strip()]


class GeminiSpeechSynthesizer:
    """Speech synthesis through a Gemini TTS model."""

    def __init__(self, client: GeminiClient, model: str, voice: str):
        self.client = client
        self.model = model
        self.voice = voice

    def speak(self, text: str) -> Optional[bytes]:
        """Audio for text, or None on failure."""
        if not text:
            return None
        return self.client.synthesize_speech(text, model=self.model, voice=self.voice)
