"""
Single-shot synthesis of project sources from a canvas snapshot.
"""

import json
import logging
from typing import Any, Dict, Optional

from sketchforge.config import Settings
from sketchforge.errors import DecodeError
from sketchforge.models import ComponentArtifact, GeneratedArtifactBundle, ProjectOptions
from sketchforge.pipeline.client import GenerativeClient
from sketchforge.pipeline.decoder import ResponseDecoder
from sketchforge.pipeline.prompts import SYNTHESIS_PROMPT_TEMPLATE, SYNTHESIS_SYSTEM_PROMPT
from sketchforge.project.naming import artifact_key

logger = logging.getLogger(__name__)


_SOURCE_KEYS = ("ts", "typescript", "source", "code", "content")
_TEMPLATE_KEYS = ("html", "template")
_STYLE_KEYS = ("scss", "css", "sass", "less", "style", "styles")
_SHELL_KEYS = ("appComponent", "app-component", "appShell", "app-shell", "shell")


def _first_text(data: Dict[str, Any], keys) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _as_source(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return _first_text(value, _SOURCE_KEYS) or None
    return None


def _as_component(value: Any) -> Optional[ComponentArtifact]:
    if isinstance(value, str):
        return ComponentArtifact(source=value)
    if not isinstance(value, dict):
        return None
    artifact = ComponentArtifact(
        source=_first_text(value, _SOURCE_KEYS),
        template=_first_text(value, _TEMPLATE_KEYS),
        style=_first_text(value, _STYLE_KEYS),
    )
    if not (artifact.source or artifact.template or artifact.style):
        return None
    return artifact


def _named_entries(value: Any):
    """Yield (name, entry) pairs from either a mapping or a list of named objects."""
    if isinstance(value, dict):
        yield from value.items()
    elif isinstance(value, list):
        for entry in value:
            if isinstance(entry, dict) and isinstance(entry.get("name"), str):
                yield entry["name"], entry


class SynthesisRequestor:
    """Asks the model for a whole project's sources in one JSON document."""

    def __init__(
        self,
        client: Optional[GenerativeClient] = None,
        settings: Optional[Settings] = None,
        decoder: Optional[ResponseDecoder] = None,
    ):
        """
        Initialize the requestor.

        Args:
            client: Generative client (a synthesis-tuned one is built if omitted).
            settings: Synthesis temperature and token budget.
            decoder: Response decoder.
        """
        self.settings = settings or getattr(client, "settings", None) or Settings.from_env()
        self.client = client or GenerativeClient(
            settings=self.settings,
            component="synthesis",
            max_tokens=self.settings.synthesis_max_tokens,
            system_prompt=SYNTHESIS_SYSTEM_PROMPT,
        )
        self.decoder = decoder or ResponseDecoder()

    @staticmethod
    def build_prompt(options: ProjectOptions) -> str:
        serialized = json.dumps(options.model_dump(mode="json", by_alias=True), ensure_ascii=False)
        return SYNTHESIS_PROMPT_TEMPLATE.format(options=serialized, style_key=options.style_format.value)

    def synthesize(
        self,
        image_bytes: bytes,
        options: ProjectOptions,
        run_id: Optional[str] = None,
    ) -> GeneratedArtifactBundle:
        """
        Request and decode one artifact bundle.

        Sent exactly once; UpstreamError and DecodeError propagate to the caller.

        Args:
            image_bytes: Canvas snapshot bytes.
            options: Project options embedded in the prompt.
            run_id: Optional id grouping LLM traces.

        Returns:
            GeneratedArtifactBundle with kebab-case keys.
        """
        response_text = self.client.request(
            self.build_prompt(options),
            image_bytes,
            self.settings.synthesis_temperature,
            run_id=run_id,
        )
        bundle = self.to_bundle(self.decoder.decode(response_text))
        logger.info(
            "Synthesized %d components, %d services, %d models, %d modules (routing: %s, shell: %s)",
            len(bundle.components),
            len(bundle.services),
            len(bundle.models),
            len(bundle.modules),
            "yes" if bundle.routing else "no",
            "yes" if bundle.shell else "no",
        )
        return bundle

    @staticmethod
    def to_bundle(payload: Any) -> GeneratedArtifactBundle:
        """
        Shape-validate a decoded payload into a bundle.

        Missing or malformed categories become empty maps; a payload that is
        not an object at all is a DecodeError.
        """
        if not isinstance(payload, dict):
            raise DecodeError("Synthesis response is not a JSON object")

        components: Dict[str, ComponentArtifact] = {}
        for name, value in _named_entries(payload.get("components")):
            key = artifact_key(name, suffixes=("component",))
            artifact = _as_component(value)
            if key and artifact is not None:
                components[key] = artifact
            else:
                logger.info("Skipping malformed component entry %r", name)

        def sources(category: str, suffix: str) -> Dict[str, str]:
            collected = {}
            for name, value in _named_entries(payload.get(category)):
                key = artifact_key(name, suffixes=(suffix,))
                source = _as_source(value)
                if key and source:
                    collected[key] = source
                else:
                    logger.info("Skipping malformed %s entry %r", category, name)
            return collected

        routing = _as_source(payload.get("routing"))
        if routing is not None and not routing.strip():
            routing = None

        shell = None
        for key in _SHELL_KEYS:
            if payload.get(key) is not None:
                shell = _as_component(payload[key])
                break

        structure = payload.get("projectStructure")
        if isinstance(structure, dict):
            description = structure.get("description")
        elif isinstance(structure, str):
            description = structure
        else:
            description = None

        return GeneratedArtifactBundle(
            components=components,
            services=sources("services", "service"),
            models=sources("models", "model"),
            modules=sources("modules", "module"),
            routing=routing,
            shell=shell,
            description=description if isinstance(description, str) else None,
        )
