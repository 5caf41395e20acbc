"""
Transport-level wrapper around vision-capable LangChain chat models.
"""

from typing import Any, Callable, Dict, List, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from sketchforge.config import Settings
from sketchforge.errors import UpstreamError
from sketchforge.io.sketch_loader import SketchLoader
from sketchforge.utils.llm_logger import LoggedLLM


class GenerativeClient:
    """Sends one prompt plus one sketch image to a vision model and returns raw text.

    The client never retries; retry policy belongs to its callers.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        component: str = "extraction",
        max_tokens: Optional[int] = None,
        system_prompt: Optional[str] = None,
        llm_factory: Optional[Callable[[float], Any]] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Provider configuration (read from the environment if omitted).
            component: Component name used in LLM traces.
            max_tokens: Completion budget (defaults to settings.max_tokens).
            system_prompt: Optional system message sent before the user turn.
            llm_factory: Builds a chat model for a given temperature; replaces
                the provider lookup, mainly for tests.
        """
        self.settings = settings or Settings.from_env()
        self.component = component
        self.max_tokens = max_tokens or self.settings.max_tokens
        self.system_prompt = system_prompt
        self._llm_factory = llm_factory
        self._models: Dict[float, Any] = {}

    def _build_llm(self, temperature: float) -> Any:
        provider = self.settings.provider
        if provider == "openai":
            return ChatOpenAI(
                model=self.settings.model_name,
                temperature=temperature,
                max_tokens=self.max_tokens,
                api_key=self.settings.api_key,
            )
        if provider == "anthropic":
            return ChatAnthropic(
                model=self.settings.model_name,
                temperature=temperature,
                max_tokens=self.max_tokens,
                api_key=self.settings.api_key,
            )
        raise ValueError(f"Unsupported provider: {provider}")

    def _get_llm(self, temperature: float, run_id: Optional[str]) -> LoggedLLM:
        temperature = round(temperature, 3)
        if temperature not in self._models:
            factory = self._llm_factory or self._build_llm
            self._models[temperature] = factory(temperature)
        return LoggedLLM(
            llm_instance=self._models[temperature],
            component=self.component,
            provider=self.settings.provider,
            model=self.settings.model_name,
            run_id=run_id,
            metadata={"temperature": temperature},
        )

    def build_messages(self, prompt_text: str, image_bytes: bytes) -> List[Any]:
        """
        Create the role-tagged message list for one request.

        The user turn mixes the prompt text with the base64-inlined image in
        the provider's content-block format.
        """
        media_type = SketchLoader.guess_media_type(image_bytes)
        encoded = SketchLoader.image_to_base64(image_bytes)

        if self.settings.provider == "anthropic":
            image_block = {
                "type": "image",
                "source": {"type": "base64", "media_type": media_type, "data": encoded},
            }
        else:
            image_block = {
                "type": "image_url",
                "image_url": {"url": f"data:{media_type};base64,{encoded}"},
            }

        messages: List[Any] = []
        if self.system_prompt:
            messages.append(SystemMessage(content=self.system_prompt))
        messages.append(HumanMessage(content=[{"type": "text", "text": prompt_text}, image_block]))
        return messages

    @staticmethod
    def _response_text(response: Any) -> str:
        content = getattr(response, "content", response)
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = []
            for block in content:
                if isinstance(block, str):
                    parts.append(block)
                elif isinstance(block, dict) and block.get("type") == "text":
                    parts.append(block.get("text", ""))
            return "".join(parts)
        return str(content)

    def request(
        self,
        prompt_text: str,
        image_bytes: bytes,
        temperature: float,
        run_id: Optional[str] = None,
    ) -> str:
        """
        Send a prompt and a sketch to the model.

        Args:
            prompt_text: Composed prompt.
            image_bytes: Raw image bytes (any data: URI prefix already removed).
            temperature: Sampling temperature for this call.
            run_id: Optional id that groups LLM traces of one task or export.

        Returns:
            Raw completion text.

        Raises:
            UpstreamError: On any transport or provider failure.
        """
        messages = self.build_messages(prompt_text, image_bytes)
        try:
            llm = self._get_llm(temperature, run_id)
            response = llm.invoke(messages)
        except Exception as e:
            raise UpstreamError(f"{self.component} request failed: {type(e).__name__}: {e}") from e
        return self._response_text(response)
