#!/usr/bin/env python3
"""
Command-line interface for the SketchForge pipelines.
"""

import argparse
import json
import logging
import sys
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path

from dotenv import load_dotenv

from sketchforge.config import Settings
from sketchforge.errors import ExportError, SketchForgeError, SketchValidationError, TaskNotFoundError
from sketchforge.io.sketch_loader import ArtifactManager
from sketchforge.models import ProjectOptions, TaskStatus
from sketchforge.pipeline.export import ProjectExporter
from sketchforge.tasks.importer import ImportService
from sketchforge.tasks.store import TaskStore

# Load environment variables
load_dotenv()


def _settings(args) -> Settings:
    return Settings.from_env(provider=args.provider, model_name=args.model, data_dir=args.data_dir)


def cmd_import(args):
    """Turn a sketch into canvas elements."""
    print("🚀 Importing sketch...")

    settings = _settings(args)
    print(f"🤖 Using {settings.provider}/{settings.model_name}")
    print(f"📁 Sketch: {args.sketch}")

    with ImportService(settings=settings) as service:
        try:
            task_id = service.submit(args.sketch, user_id=args.user)
        except SketchValidationError as e:
            print(f"❌ Sketch rejected: {e}")
            return 1

        print(f"🧵 Task ID: {task_id}")
        try:
            view = service.wait(task_id, timeout=args.timeout)
        except FuturesTimeoutError:
            view = service.get_status(task_id)
            print(f"⏳ Task {task_id} is still {view.status.value} ({view.progress}%) after {args.timeout}s")
            print(f"💡 Check again with: status {task_id}")
            return 1

    if view.status == TaskStatus.FAILED:
        print(f"❌ Import failed: {view.error}")
        return 1

    print(f"✅ {len(view.elements or [])} elements extracted")
    print(f"🖼️  Preview: {settings.data_dir / view.preview}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps({"elements": view.elements}, indent=2), encoding="utf-8")
        print(f"💾 Elements saved to: {output_path}")
    else:
        print(json.dumps({"elements": view.elements}, indent=2))
    return 0


def cmd_export(args):
    """Generate a project archive from a canvas image."""
    print("🚀 Generating project...")

    image_path = Path(args.image)
    if not image_path.exists():
        print(f"❌ Error: Canvas image not found: {image_path}")
        return 1

    if args.options:
        options = ProjectOptions.model_validate_json(Path(args.options).read_text(encoding="utf-8"))
    else:
        options = ProjectOptions(
            name=args.name,
            title=args.title,
            version=args.version,
            include_routing=not args.no_routing,
            styling=args.styling,
            style_format=args.style_format,
        )

    settings = _settings(args)
    print(f"🤖 Using {settings.provider}/{settings.model_name}")
    print(f"📦 Project: {options.package_name} (framework {options.version}, styling: {options.styling.value})")

    exporter = ProjectExporter(settings=settings)
    try:
        result = exporter.export(image_path.read_bytes(), options)
    except ExportError as e:
        print(f"❌ {e}")
        return 1

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    archive_path = output_dir / result.filename
    archive_path.write_bytes(result.archive)

    print(f"✅ Project generated ({result.architecture.kind.value} architecture, {result.file_count} files)")
    print(f"💾 Archive: {archive_path}")
    for warning in result.warnings:
        print(f"⚠️  {warning}")
    return 0


def cmd_status(args):
    """Show a persisted import task."""
    settings = _settings(args)
    store = TaskStore(ArtifactManager(settings.data_dir))
    task = store.get(args.task_id)
    if task is None:
        print(f"❌ {TaskNotFoundError(f'Unknown task: {args.task_id}')}")
        return 1

    print(f"🧵 Task ID: {task.id}")
    print(f"👤 User: {task.user_id}")
    print(f"📁 Sketch: {task.source_path}")
    print(f"📊 Status: {task.status.value}")
    if task.result is not None:
        print(f"🔢 Elements: {len(task.result.elements)}")
        print(f"🖼️  Preview: {task.result.preview}")
        if task.result.used_fallback:
            print("⚠️  Sketch could not be interpreted, default elements returned")
    if task.error:
        print(f"❌ Error: {task.error}")
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Sketch to canvas elements and sketch to Angular project generation",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable pipeline logging")
    parser.add_argument("--provider", "-p", choices=["openai", "anthropic"], help="LLM provider")
    parser.add_argument("--model", help="Model name (default: provider default)")
    parser.add_argument("--data-dir", help="Directory for previews and task records")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Import command
    import_parser = subparsers.add_parser("import", help="Extract canvas elements from a sketch")
    import_parser.add_argument("sketch", help="Path to the sketch image (jpg, jpeg, png, gif)")
    import_parser.add_argument("--user", "-u", default="cli", help="Owning user id")
    import_parser.add_argument("--output", "-o", help="Write elements JSON to this path")
    import_parser.add_argument("--timeout", type=float, help="Seconds to wait for the task")

    # Export command
    export_parser = subparsers.add_parser("export", help="Generate an Angular project archive")
    export_parser.add_argument("image", help="Path to the canvas image")
    export_parser.add_argument("--output", "-o", default="outputs", help="Output directory")
    export_parser.add_argument("--options", help="JSON file with project options")
    export_parser.add_argument("--name", "-n", default="sketch-app", help="Project name")
    export_parser.add_argument("--title", help="Display name (default: from project name)")
    export_parser.add_argument("--version", default="17.3", help="Target framework version")
    export_parser.add_argument("--no-routing", action="store_true", help="Place components inline instead of routing")
    export_parser.add_argument("--styling", default="none", choices=["none", "tailwind", "material"])
    export_parser.add_argument("--style-format", default="scss", choices=["scss", "css"])

    # Status command
    status_parser = subparsers.add_parser("status", help="Show a persisted import task")
    status_parser.add_argument("task_id", help="Task id printed by the import command")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "import":
            return cmd_import(args)
        elif args.command == "export":
            return cmd_export(args)
        elif args.command == "status":
            return cmd_status(args)
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user")
        return 130
    except SketchForgeError as e:
        print(f"\n❌ Error: {str(e)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
