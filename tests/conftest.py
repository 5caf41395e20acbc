"""
Shared fixtures: scripted model stand-ins and sample images.
"""

import json
from io import BytesIO

import pytest
from PIL import Image, ImageDraw

from sketchforge.config import Settings


class ScriptedClient:
    """Replays canned responses in order; exceptions in the script are raised."""

    def __init__(self, responses, settings=None):
        self.responses = list(responses)
        self.calls = []
        if settings is not None:
            self.settings = settings

    def request(self, prompt_text, image_bytes, temperature, run_id=None):
        self.calls.append({
            "prompt": prompt_text,
            "image": image_bytes,
            "temperature": temperature,
            "run_id": run_id,
        })
        response = self.responses.pop(0) if self.responses else ""
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def sketch_bytes():
    """A small PNG with a box and a line on it."""
    image = Image.new("RGB", (400, 300), color="white")
    draw = ImageDraw.Draw(image)
    draw.rectangle([40, 40, 200, 140], outline="black", width=3)
    draw.line([220, 60, 360, 240], fill="black", width=3)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def bundle_response(components=None, services=None, routing=None, **extra):
    """Synthesis response text fenced the way models usually answer."""
    payload = {
        "projectStructure": {"description": "Test project"},
        "components": components or {},
        "services": services or {},
        "models": {},
        "modules": {},
        "routing": routing,
    }
    payload.update(extra)
    return "Here is your project:\n```json\n" + json.dumps(payload) + "\n```"


def component_payload(name, symbol, standalone=False):
    flag = "  standalone: true,\n" if standalone else ""
    return {
        "ts": (
            "import { Component } from '@angular/core';\n"
            "\n"
            "@Component({\n"
            f"  selector: '{name}',\n"
            f"{flag}"
            f"  templateUrl: './{name}.component.html',\n"
            f"  styleUrls: ['./{name}.component.scss']\n"
            "})\n"
            f"export class {symbol} {{}}\n"
        ),
        "html": f"<div class=\"{name}\">{name} works</div>\n",
        "scss": f".{name} {{ padding: 1rem; }}\n",
    }
