"""
Tests for skeleton generation.
"""

import json

import pytest

from sketchforge.models import ProjectOptions
from sketchforge.project.architecture import detect_architecture
from sketchforge.project.skeleton import SkeletonBuilder


@pytest.fixture
def builder():
    return SkeletonBuilder()


def test_standalone_skeleton_layout(builder):
    with builder.build(ProjectOptions(name="shop", version="17.3")) as tree:
        files = tree.files()

        assert "src/app/app.config.ts" in files
        assert "src/app/app.routes.ts" in files
        assert "src/app/app.module.ts" not in files
        assert "bootstrapApplication" in tree.read_text("src/main.ts")
        assert "standalone: true" in tree.read_text("src/app/app.component.ts")
        assert detect_architecture(tree, ProjectOptions(version="17.3")).is_standalone

        package = json.loads(tree.read_text("package.json"))
        assert package["name"] == "shop"
        assert package["dependencies"]["@angular/core"] == "^17.3.0"

        angular = json.loads(tree.read_text("angular.json"))
        build = angular["projects"]["shop"]["architect"]["build"]
        assert build["builder"].endswith(":application")
        assert build["options"]["browser"] == "src/main.ts"


def test_module_skeleton_layout(builder):
    options = ProjectOptions(name="legacy", version="16.2")

    with builder.build(options) as tree:
        files = tree.files()

        assert "src/app/app.module.ts" in files
        assert "src/app/app-routing.module.ts" in files
        assert "src/app/app.config.ts" not in files
        assert "bootstrapModule(AppModule)" in tree.read_text("src/main.ts")
        assert "standalone" not in tree.read_text("src/app/app.component.ts")
        assert "AppRoutingModule" in tree.read_text("src/app/app.module.ts")
        assert not detect_architecture(tree, options).is_standalone

        build = json.loads(tree.read_text("angular.json"))["projects"]["legacy"]["architect"]["build"]
        assert build["builder"].endswith(":browser")
        assert build["options"]["main"] == "src/main.ts"


def test_routing_disabled_writes_no_routing_files(builder):
    with builder.build(ProjectOptions(version="17", includeRouting=False)) as tree:
        assert not tree.exists("src/app/app.routes.ts")
        assert "provideRouter" not in tree.read_text("src/app/app.config.ts")
        assert "imports: [CommonModule, RouterOutlet]" in tree.read_text("src/app/app.component.ts")

    with builder.build(ProjectOptions(version="15", includeRouting=False)) as tree:
        assert not tree.exists("src/app/app-routing.module.ts")
        assert "AppRoutingModule" not in tree.read_text("src/app/app.module.ts")


def test_styling_add_ons(builder):
    with builder.build(ProjectOptions(cssFramework="utility-framework")) as tree:
        package = json.loads(tree.read_text("package.json"))
        assert "tailwindcss" in package["devDependencies"]
        assert tree.exists("tailwind.config.js")
        assert tree.read_text("src/styles.scss").startswith("@tailwind base;")

    with builder.build(ProjectOptions(version="16", cssFramework="component-library")) as tree:
        package = json.loads(tree.read_text("package.json"))
        assert package["dependencies"]["@angular/material"] == "^16.0.0"
        assert "MatButtonModule" in tree.read_text("src/app/app.module.ts")
        assert "Material+Icons" in tree.read_text("src/index.html")


def test_style_format_and_escaped_title(builder):
    with builder.build(ProjectOptions(title="Tom & Jerry <Admin>", styleFormat="css")) as tree:
        assert tree.exists("src/styles.css")
        assert tree.exists("src/app/app.component.css")
        assert "<title>Tom &amp; Jerry &lt;Admin&gt;</title>" in tree.read_text("src/index.html")
        assert "app.component.css" in tree.read_text("src/app/app.component.ts")


def test_unknown_version_uses_latest(builder):
    options = ProjectOptions(version="next")

    assert builder.framework_range(options) == "latest"


def test_cleanup_removes_staging_directory(builder):
    tree = builder.build(ProjectOptions())
    base = tree.base

    tree.cleanup()
    tree.cleanup()

    assert not base.exists()
