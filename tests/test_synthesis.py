"""
Tests for project synthesis and bundle decoding.
"""

import json

import pytest
from conftest import ScriptedClient, bundle_response, component_payload

from sketchforge.config import Settings
from sketchforge.errors import DecodeError, UpstreamError
from sketchforge.models import ProjectOptions
from sketchforge.pipeline.synthesis import SynthesisRequestor


@pytest.fixture
def synthesis_settings():
    return Settings(synthesis_temperature=0.3)


def test_synthesize_sends_single_request(synthesis_settings, sketch_bytes):
    client = ScriptedClient([
        bundle_response(components={"login-form": component_payload("login-form", "LoginFormComponent")})
    ])
    requestor = SynthesisRequestor(client=client, settings=synthesis_settings)

    bundle = requestor.synthesize(sketch_bytes, ProjectOptions(name="shop"), run_id="export-1")

    assert len(client.calls) == 1
    call = client.calls[0]
    assert call["temperature"] == 0.3
    assert call["run_id"] == "export-1"
    assert call["image"] == sketch_bytes
    assert list(bundle.components) == ["login-form"]
    assert bundle.components["login-form"].template.startswith("<div")
    assert bundle.description == "Test project"


def test_prompt_embeds_options_and_style_key():
    prompt = SynthesisRequestor.build_prompt(ProjectOptions(name="crm", styleFormat="css", includeRouting=False))

    assert '"name": "crm"' in prompt
    assert '"includeRouting": false' in prompt
    assert '"css": "contents of the stylesheet"' in prompt


def test_upstream_and_decode_errors_propagate(synthesis_settings, sketch_bytes):
    requestor = SynthesisRequestor(client=ScriptedClient([UpstreamError("502")]), settings=synthesis_settings)
    with pytest.raises(UpstreamError):
        requestor.synthesize(sketch_bytes, ProjectOptions())

    requestor = SynthesisRequestor(client=ScriptedClient(["Sorry, no project today."]), settings=synthesis_settings)
    with pytest.raises(DecodeError):
        requestor.synthesize(sketch_bytes, ProjectOptions())


def test_to_bundle_normalizes_keys():
    bundle = SynthesisRequestor.to_bundle({
        "components": {
            "LoginFormComponent": {"typescript": "ts", "template": "<form></form>", "css": ".a {}"},
            "user-list.component.ts": "export class UserListComponent {}",
        },
        "services": {"user-service": "export class UserService {}", "Auth.service": {"code": "x"}},
        "models": {"UserModel": "export interface User {}"},
        "modules": {"shared": "export class SharedModule {}"},
    })

    assert sorted(bundle.components) == ["login-form", "user-list"]
    assert bundle.components["login-form"].style == ".a {}"
    assert bundle.components["user-list"].template == ""
    assert sorted(bundle.services) == ["auth", "user"]
    assert list(bundle.models) == ["user"]
    assert list(bundle.modules) == ["shared"]


def test_to_bundle_accepts_component_lists_and_shell():
    bundle = SynthesisRequestor.to_bundle({
        "components": [
            {"name": "dashboard", "ts": "export class DashboardComponent {}", "html": "<p></p>"},
            {"ts": "nameless"},
        ],
        "appComponent": {"html": "<main></main>"},
        "routing": "   ",
    })

    assert list(bundle.components) == ["dashboard"]
    assert bundle.shell.template == "<main></main>"
    assert bundle.shell.source == ""
    assert bundle.routing is None


def test_to_bundle_tolerates_missing_categories():
    bundle = SynthesisRequestor.to_bundle({"components": "not a map", "services": None})

    assert bundle.components == {}
    assert bundle.services == {}
    assert bundle.shell is None
    assert bundle.description is None


def test_to_bundle_rejects_non_object():
    with pytest.raises(DecodeError):
        SynthesisRequestor.to_bundle(json.loads("[1, 2]"))
