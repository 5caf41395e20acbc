"""
End-to-end tests for the full-project export pipeline with a scripted model.
"""

import base64
import zipfile
from io import BytesIO

import pytest
from conftest import ScriptedClient, bundle_response, component_payload

from sketchforge.config import Settings
from sketchforge.errors import ExportError, UpstreamError
from sketchforge.models import ArchitectureKind, ProjectOptions
from sketchforge.pipeline.export import ProjectExporter
from sketchforge.pipeline.synthesis import SynthesisRequestor


def _exporter(*responses):
    client = ScriptedClient(list(responses))
    requestor = SynthesisRequestor(client=client, settings=Settings())
    return ProjectExporter(requestor=requestor), client


def _files(result):
    archive = zipfile.ZipFile(BytesIO(result.archive))
    return {name: archive.read(name).decode("utf-8") for name in archive.namelist() if not name.endswith("/")}


def test_single_component_without_routing(sketch_bytes):
    exporter, _ = _exporter(
        bundle_response(components={"login-form": component_payload("login-form", "LoginFormComponent")})
    )
    options = ProjectOptions(name="auth-demo", version="17", includeRouting=False)

    result = exporter.export(sketch_bytes, options)

    assert result.filename == "auth-demo.zip"
    assert result.architecture.kind == ArchitectureKind.STANDALONE_BASED
    files = _files(result)
    assert all(name.startswith("auth-demo/") for name in files)
    assert result.file_count == len(files)
    template = files["auth-demo/src/app/app.component.html"]
    assert "<login-form></login-form>" in template
    assert "<nav" not in template
    assert "auth-demo/src/app/app.routes.ts" not in files
    assert "standalone: true" in files["auth-demo/src/app/components/login-form/login-form.component.ts"]
    assert result.warnings == []


def test_two_components_with_routing(sketch_bytes):
    exporter, _ = _exporter(
        bundle_response(components={
            "app-dashboard": component_payload("app-dashboard", "AppDashboardComponent"),
            "app-settings": component_payload("app-settings", "AppSettingsComponent"),
        })
    )

    result = exporter.export(sketch_bytes, ProjectOptions(name="admin", version="17.3"))

    files = _files(result)
    routes = files["admin/src/app/app.routes.ts"]
    assert "{ path: '', redirectTo: 'dashboard', pathMatch: 'full' }" in routes
    assert "{ path: 'dashboard', component: AppDashboardComponent }" in routes
    assert "{ path: 'settings', component: AppSettingsComponent }" in routes
    assert routes.count("path:") == 3
    template = files["admin/src/app/app.component.html"]
    assert 'routerLink="/dashboard"' in template
    assert 'routerLink="/settings"' in template
    assert ">Settings</a>" in template


def test_module_based_project(sketch_bytes):
    exporter, _ = _exporter(
        bundle_response(
            components={"dashboard": component_payload("dashboard", "DashboardComponent", standalone=True)},
            services={"user": "export class UserService {}\n"},
        )
    )

    result = exporter.export(sketch_bytes, ProjectOptions(name="legacy", version="16"))

    assert result.architecture.kind == ArchitectureKind.MODULE_BASED
    files = _files(result)
    module = files["legacy/src/app/app.module.ts"]
    assert "DashboardComponent" in module
    assert "UserService" in module
    assert "standalone" not in files["legacy/src/app/components/dashboard/dashboard.component.ts"]
    assert "legacy/src/app/services/user.service.ts" in files


def test_data_uri_canvas_image(sketch_bytes):
    exporter, client = _exporter(bundle_response())
    canvas = "data:image/png;base64," + base64.b64encode(sketch_bytes).decode("ascii")

    result = exporter.export(canvas, ProjectOptions(name="blank"))

    assert client.calls[0]["image"] == sketch_bytes
    assert "Welcome to Blank" in _files(result)["blank/src/app/app.component.html"]


def test_routing_ignored_when_disabled(sketch_bytes):
    exporter, _ = _exporter(bundle_response(routing="export const routes = [];"))

    result = exporter.export(sketch_bytes, ProjectOptions(includeRouting=False))

    assert len(result.warnings) == 1
    assert "routing is disabled" in result.warnings[0]


@pytest.mark.parametrize("response", [UpstreamError("503 Service Unavailable"), "I'm sorry, I can't do that."])
def test_synthesis_failure_raises_export_error(sketch_bytes, response):
    exporter, _ = _exporter(response)

    with pytest.raises(ExportError):
        exporter.export(sketch_bytes, ProjectOptions())
