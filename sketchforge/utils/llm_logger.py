"""
LLM call tracing for the extraction and synthesis stages.

Supports configurable log levels (NONE, INFO, DEBUG, TRACE) and dual output:
- Console: Human-readable one-line summaries
- File: JSON Lines records for later analysis
"""

import json
import os
import time
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv


class LogLevel(Enum):
    """Logging levels for LLM debug output."""

    NONE = 0
    INFO = 1
    DEBUG = 2
    TRACE = 3


class LLMLogger:
    """Process-wide logger for LLM calls with configurable levels."""

    _instance: Optional["LLMLogger"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        load_dotenv()

        level_str = os.getenv("LLM_DEBUG_LEVEL", "NONE").upper()
        try:
            self.level = LogLevel[level_str]
        except KeyError:
            self.level = LogLevel.NONE

        self.log_to_file = os.getenv("LLM_LOG_TO_FILE", "true").lower() == "true"
        self.log_dir = Path(os.getenv("LLM_LOG_DIR", "outputs"))

        self._initialized = True

    def should_log(self, min_level: LogLevel) -> bool:
        return self.level.value >= min_level.value

    @staticmethod
    def _preview(content: str, max_len: int = 200) -> str:
        if len(content) <= max_len:
            return content
        return content[:max_len] + "... [truncated]"

    @staticmethod
    def summarize_image_url(url: str) -> str:
        """Replace an inlined base64 image with a size summary."""
        if "base64," not in url:
            return f"[IMAGE_URL: {url[:100]}]"
        header, data = url.split("base64,", 1)
        media_type = header.replace("data:", "").rstrip(";") or "image"
        return f"[IMAGE_DATA: {media_type}, base64 encoded, {len(data):,} bytes]"

    def _serialize_content(self, content: Any) -> Any:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = []
            for item in content:
                if isinstance(item, dict) and item.get("type") == "image_url":
                    url = item.get("image_url", {})
                    url = url.get("url", "") if isinstance(url, dict) else str(url)
                    parts.append({"type": "text", "text": self.summarize_image_url(url)})
                elif isinstance(item, dict) and item.get("type") == "image":
                    data = item.get("source", {}).get("data", "")
                    parts.append({"type": "text", "text": f"[IMAGE_DATA: base64 encoded, {len(data):,} bytes]"})
                else:
                    parts.append(item)
            return parts
        return str(content)

    def serialize_messages(self, messages: List[Any]) -> List[Dict[str, Any]]:
        return [
            {
                "type": msg.__class__.__name__,
                "content": self._serialize_content(getattr(msg, "content", msg)),
            }
            for msg in messages
        ]

    def _write(self, run_id: Optional[str], record: Dict[str, Any]):
        """Append a record to the run's JSON Lines file."""
        if not self.log_to_file or not run_id:
            return

        log_file = self.log_dir / run_id / "logs" / "llm_calls.jsonl"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")

    def log_request(
        self,
        component: str,
        provider: str,
        model: str,
        messages: List[Any],
        temperature: Optional[float] = None,
        run_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Log the start of an LLM call.

        Returns:
            Invocation id, empty when logging is disabled.
        """
        if not self.should_log(LogLevel.INFO):
            return ""

        invocation_id = str(uuid.uuid4())
        timestamp = datetime.now().isoformat()

        line = f"[{timestamp}] LLM Call: [{component}] {provider}/{model}"
        if temperature is not None:
            line += f" | temperature={temperature:.2f}"
        if run_id:
            line += f" | run_id: {run_id}"
        print(line)

        if self.should_log(LogLevel.DEBUG):
            record = {
                "timestamp": timestamp,
                "event": "request",
                "component": component,
                "invocation_id": invocation_id,
                "provider": provider,
                "model": model,
                "temperature": temperature,
                "message_count": len(messages),
                "metadata": metadata or {},
            }
            if self.level == LogLevel.TRACE:
                record["messages"] = self.serialize_messages(messages)
            self._write(run_id, record)

        return invocation_id

    def log_response(
        self,
        invocation_id: str,
        component: str,
        response: Any,
        started: float,
        run_id: Optional[str] = None,
    ):
        """Log the completion of an LLM call with latency and token usage."""
        if not invocation_id:
            return

        latency_ms = (time.time() - started) * 1000
        content = getattr(response, "content", response)
        if not isinstance(content, str):
            content = json.dumps(self._serialize_content(content), ensure_ascii=False)

        usage = getattr(response, "usage_metadata", None) or {}
        total_tokens = usage.get("total_tokens") if isinstance(usage, dict) else None

        line = f"[{datetime.now().isoformat()}] LLM Response: [{component}] {latency_ms:.1f}ms"
        if total_tokens is not None:
            line += f" | {total_tokens} tokens"
        print(line)
        if self.should_log(LogLevel.DEBUG):
            print(f"  Response: {self._preview(content)}")

        self._write(run_id, {
            "timestamp": datetime.now().isoformat(),
            "event": "response",
            "component": component,
            "invocation_id": invocation_id,
            "latency_ms": latency_ms,
            "usage": dict(usage) if isinstance(usage, dict) else None,
            "content_length": len(content),
            "content_preview": self._preview(content) if self.should_log(LogLevel.DEBUG) else None,
            "content": content if self.level == LogLevel.TRACE else None,
        })

    def log_error(self, invocation_id: str, component: str, error: Exception, run_id: Optional[str] = None):
        if not invocation_id:
            return
        print(f"[{datetime.now().isoformat()}] LLM Error: [{component}] {type(error).__name__}: {error}")
        self._write(run_id, {
            "timestamp": datetime.now().isoformat(),
            "event": "error",
            "component": component,
            "invocation_id": invocation_id,
            "error": f"{type(error).__name__}: {error}",
        })


def get_logger() -> LLMLogger:
    """Get the singleton logger instance."""
    return LLMLogger()


class LoggedLLM:
    """
    Wrapper around a LangChain chat model that traces every invoke() call.
    """

    def __init__(
        self,
        llm_instance: Any,
        component: str,
        provider: str,
        model: str,
        run_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.llm = llm_instance
        self.component = component
        self.provider = provider
        self.model = model
        self.run_id = run_id
        self.metadata = metadata or {}
        self.logger = get_logger()

    def __getattr__(self, name: str):
        return getattr(self.llm, name)

    def invoke(self, messages: List[Any], **kwargs) -> Any:
        invocation_id = self.logger.log_request(
            component=self.component,
            provider=self.provider,
            model=self.model,
            messages=messages,
            temperature=getattr(self.llm, "temperature", None),
            run_id=self.run_id,
            metadata=self.metadata,
        )
        started = time.time()
        try:
            response = self.llm.invoke(messages, **kwargs)
        except Exception as e:
            self.logger.log_error(invocation_id, self.component, e, run_id=self.run_id)
            raise
        self.logger.log_response(invocation_id, self.component, response, started, run_id=self.run_id)
        return response
