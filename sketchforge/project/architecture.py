"""
Architecture detection and adaptation of generated sources.

Detection runs once per export against the freshly built skeleton; the
resulting ProjectArchitecture is handed to the adapter, which rewrites the
central module (module-based), the shell component (standalone) and the
routing file so that generated components are wired in. All edits are
idempotent and anchor misses become warnings, never errors.
"""

import html
import logging
import re
from typing import List, Tuple

from sketchforge.errors import StructuralAdaptationWarning
from sketchforge.models import (
    ArchitectureKind,
    ArchitectureSignals,
    GeneratedArtifactBundle,
    ProjectArchitecture,
    ProjectOptions,
)
from sketchforge.project import source_edit
from sketchforge.project.naming import (
    component_import_path,
    component_selector,
    component_symbol,
    nav_label,
    route_path,
    service_import_path,
    service_symbol,
)
from sketchforge.project.tree import ProjectTree

logger = logging.getLogger(__name__)


# First major version whose project scaffolding is standalone-only
STANDALONE_THRESHOLD = 17

STANDALONE_MARKER = re.compile(r"\bstandalone\s*:\s*true\b")

APP_DIR = "src/app"
SHELL_SOURCE = f"{APP_DIR}/app.component.ts"
SHELL_TEMPLATE = f"{APP_DIR}/app.component.html"
APP_MODULE = f"{APP_DIR}/app.module.ts"
ROUTING_MODULE = f"{APP_DIR}/app-routing.module.ts"
APP_CONFIG = f"{APP_DIR}/app.config.ts"
ROUTES_FILE = f"{APP_DIR}/app.routes.ts"


def shell_style_path(options: ProjectOptions) -> str:
    return f"{APP_DIR}/app.component.{options.style_format.value}"


def routing_file(architecture: ProjectArchitecture) -> str:
    return ROUTES_FILE if architecture.is_standalone else ROUTING_MODULE


SHELL_STYLESHEET = """.app-container {
  display: flex;
  flex-direction: column;
  min-height: 100vh;
}

.app-header {
  background-color: #333;
  color: #fff;
  padding: 1rem;
  text-align: center;
}

.app-nav ul {
  display: flex;
  gap: 1rem;
  justify-content: center;
  list-style: none;
  margin: 0;
  padding: 0.75rem;
  background-color: #f0f0f0;
}

.app-nav a {
  color: #333;
  text-decoration: none;
}

.app-nav a.active {
  font-weight: 600;
}

.app-content {
  flex: 1;
  padding: 1rem;
}

.welcome {
  text-align: center;
  padding: 2rem;
}

.app-footer {
  background-color: #f5f5f5;
  padding: 1rem;
  text-align: center;
  font-size: 0.875rem;
}
"""


def select_architecture(signals: ArchitectureSignals) -> ProjectArchitecture:
    """
    Pick the architecture from detection inputs alone.

    Standalone if the version mandates it, the shell carries the standalone
    marker, an application config file exists, or routing is a bare routes
    file rather than a routing module. Module-based otherwise.
    """
    standalone = (
        signals.version >= STANDALONE_THRESHOLD
        or signals.shell_has_standalone_marker
        or signals.has_app_config
        or (signals.has_routes_file and not signals.has_routing_module)
    )
    kind = ArchitectureKind.STANDALONE_BASED if standalone else ArchitectureKind.MODULE_BASED
    return ProjectArchitecture(kind=kind, version=signals.version)


def collect_signals(tree: ProjectTree, options: ProjectOptions) -> ArchitectureSignals:
    shell = tree.read_text(SHELL_SOURCE) if tree.exists(SHELL_SOURCE) else ""
    return ArchitectureSignals(
        version=options.major_version,
        shell_has_standalone_marker=bool(STANDALONE_MARKER.search(shell)),
        has_app_config=tree.exists(APP_CONFIG),
        has_routes_file=tree.exists(ROUTES_FILE),
        has_routing_module=tree.exists(ROUTING_MODULE),
    )


def detect_architecture(tree: ProjectTree, options: ProjectOptions) -> ProjectArchitecture:
    """Inspect the project as currently written and decide its architecture."""
    signals = collect_signals(tree, options)
    architecture = select_architecture(signals)
    logger.info("Detected %s architecture (%s)", architecture.kind.value, signals.model_dump())
    return architecture


def extract_routes_array(source: str) -> str:
    """
    Pull the route-record list out of a routing source.

    Looks for ``routes = [...]`` (typed or not) and then for an inline
    ``forRoot([...])``. Returns "" when neither is found.
    """
    patterns = (
        re.compile(r"\broutes\s*(?::\s*Routes)?\s*=\s*\[", re.IGNORECASE),
        re.compile(r"\bRoutes\s*=\s*\["),
        re.compile(r"forRoot\s*\(\s*\["),
    )
    for pattern in patterns:
        match = pattern.search(source)
        if match is None:
            continue
        open_index = match.end() - 1
        close_index = source_edit.match_bracket(source, open_index)
        if close_index > open_index:
            return source[open_index:close_index + 1]
    return ""


def referenced_components(routes_source: str) -> List[str]:
    return re.findall(r"\bcomponent\s*:\s*([A-Za-z_$][\w$]*)", routes_source)


class ArchitectureAdapter:
    """Wires generated artifacts into a project of a known architecture."""

    def __init__(self, architecture: ProjectArchitecture, options: ProjectOptions):
        self.architecture = architecture
        self.options = options
        self.warnings: List[StructuralAdaptationWarning] = []

    def _warn(self, path: str, message: str):
        warning = StructuralAdaptationWarning(path, message)
        logger.warning("Structural adaptation skipped: %s", warning)
        self.warnings.append(warning)

    def _component_path(self, name: str, ext: str) -> str:
        return f"{APP_DIR}/components/{name}/{name}.component.{ext}"

    def adapt(self, tree: ProjectTree, bundle: GeneratedArtifactBundle) -> List[StructuralAdaptationWarning]:
        """
        Apply every adaptation rule for the detected architecture.

        Returns:
            Warnings collected during this call, also kept on ``self.warnings``.
        """
        start = len(self.warnings)
        self.check_exports(tree, bundle)
        if self.architecture.is_standalone:
            self.adapt_standalone_components(tree, bundle)
        else:
            self.adapt_module_file(tree, bundle)
            self.adapt_declared_components(tree, bundle)
        self.adapt_shell(tree, bundle)
        self.adapt_routing(tree, bundle)
        return self.warnings[start:]

    def check_exports(self, tree: ProjectTree, bundle: GeneratedArtifactBundle):
        for name in bundle.components:
            path = self._component_path(name, "ts")
            symbol = component_symbol(name)
            if tree.exists(path) and not source_edit.exports_symbol(tree.read_text(path), symbol):
                self._warn(path, f"component source does not export {symbol}")
        for name in bundle.services:
            path = f"{APP_DIR}/services/{name}.service.ts"
            symbol = service_symbol(name)
            if tree.exists(path) and not source_edit.exports_symbol(tree.read_text(path), symbol):
                self._warn(path, f"service source does not export {symbol}")

    # Module-based

    def adapt_module_file(self, tree: ProjectTree, bundle: GeneratedArtifactBundle):
        """Import and declare every component, import and provide every service."""
        if not tree.exists(APP_MODULE):
            self._warn(APP_MODULE, "central module file is missing")
            return

        source = tree.read_text(APP_MODULE)
        for name in bundle.components:
            source = source_edit.ensure_named_import(source, component_symbol(name), component_import_path(name))
        for name in bundle.services:
            source = source_edit.ensure_named_import(source, service_symbol(name), service_import_path(name))

        if bundle.components:
            source, found = source_edit.ensure_array_entries(
                source, "NgModule", "declarations",
                [component_symbol(name) for name in bundle.components],
                create=False,
            )
            if not found:
                self._warn(APP_MODULE, "no declarations list in @NgModule")
        if bundle.services:
            source, found = source_edit.ensure_array_entries(
                source, "NgModule", "providers",
                [service_symbol(name) for name in bundle.services],
            )
            if not found:
                self._warn(APP_MODULE, "no @NgModule decorator to register providers on")

        tree.write_text(APP_MODULE, source)

    def adapt_declared_components(self, tree: ProjectTree, bundle: GeneratedArtifactBundle):
        """Declared components must not be standalone or carry their own imports."""
        for name in bundle.components:
            path = self._component_path(name, "ts")
            if not tree.exists(path):
                continue
            source = tree.read_text(path)
            if not STANDALONE_MARKER.search(source):
                continue
            source, found = source_edit.remove_decorator_property(source, "Component", "standalone")
            if not found:
                self._warn(path, "no @Component decorator")
                continue
            source, _ = source_edit.remove_decorator_property(source, "Component", "imports")
            tree.write_text(path, source)

    # Standalone

    def _template_imports(self, template: str) -> List[Tuple[str, str]]:
        imports = [("CommonModule", "@angular/common")]
        if re.search(r"formGroup|formControlName|formArrayName", template):
            imports.append(("ReactiveFormsModule", "@angular/forms"))
        if "ngModel" in template:
            imports.append(("FormsModule", "@angular/forms"))
        if "routerLink" in template and self.options.include_routing:
            imports.append(("RouterLink", "@angular/router"))
        return imports

    def _make_standalone(self, path: str, source: str, imports: List[Tuple[str, str]]) -> str:
        source, found = source_edit.set_decorator_flag(source, "Component", "standalone", "true")
        if not found:
            self._warn(path, "no @Component decorator")
            return source
        source, _ = source_edit.ensure_array_entries(source, "Component", "imports", [symbol for symbol, _ in imports])
        return source_edit.ensure_named_imports(source, imports)

    def adapt_standalone_components(self, tree: ProjectTree, bundle: GeneratedArtifactBundle):
        for name in bundle.components:
            path = self._component_path(name, "ts")
            if not tree.exists(path):
                continue
            template_path = self._component_path(name, "html")
            template = tree.read_text(template_path) if tree.exists(template_path) else ""
            source = self._make_standalone(path, tree.read_text(path), self._template_imports(template))
            tree.write_text(path, source)

    # Shell

    def show_navigation(self, bundle: GeneratedArtifactBundle) -> bool:
        return self.options.include_routing and bool(bundle.components)

    def render_shell_template(self, bundle: GeneratedArtifactBundle) -> str:
        """Default shell: header, optional navigation and the content region."""
        prefix = self.options.component_prefix
        lines = [
            '<div class="app-container">',
            '  <header class="app-header">',
            f"    <h1>{html.escape(self.options.display_name)}</h1>",
            "  </header>",
        ]
        if self.show_navigation(bundle):
            lines.append('  <nav class="app-nav">')
            lines.append("    <ul>")
            for name in bundle.components:
                lines.append(
                    f'      <li><a routerLink="/{route_path(name, prefix)}" routerLinkActive="active">'
                    f"{html.escape(nav_label(name, prefix))}</a></li>"
                )
            lines.append("    </ul>")
            lines.append("  </nav>")

        lines.append('  <main class="app-content">')
        if not bundle.components:
            lines.append('    <section class="welcome">')
            lines.append(f"      <h2>Welcome to {html.escape(self.options.display_name)}</h2>")
            lines.append("      <p>This project was generated from a sketch.</p>")
            lines.append("    </section>")
        elif self.options.include_routing:
            lines.append("    <router-outlet></router-outlet>")
        else:
            for name in bundle.components:
                selector = component_selector(name)
                lines.append(f"    <{selector}></{selector}>")
        lines.append("  </main>")
        lines.append('  <footer class="app-footer">')
        lines.append("    <p>Generated with SketchForge</p>")
        lines.append("  </footer>")
        lines.append("</div>")
        return "\n".join(lines) + "\n"

    def adapt_shell(self, tree: ProjectTree, bundle: GeneratedArtifactBundle):
        style_path = shell_style_path(self.options)
        if bundle.shell is None:
            tree.write_text(SHELL_TEMPLATE, self.render_shell_template(bundle))
        if bundle.shell is None or not bundle.shell.style:
            tree.write_text(style_path, SHELL_STYLESHEET)

        if not tree.exists(SHELL_SOURCE):
            self._warn(SHELL_SOURCE, "shell component source is missing")
            return
        source = tree.read_text(SHELL_SOURCE)

        if self.architecture.is_standalone:
            imports = [("CommonModule", "@angular/common"), ("RouterOutlet", "@angular/router")]
            if self.show_navigation(bundle) or (
                bundle.shell is not None and "routerLink" in bundle.shell.template
            ):
                imports.append(("RouterLink", "@angular/router"))
                imports.append(("RouterLinkActive", "@angular/router"))
            imports.extend((component_symbol(name), component_import_path(name)) for name in bundle.components)
            source = self._make_standalone(SHELL_SOURCE, source, imports)
        elif STANDALONE_MARKER.search(source):
            source, found = source_edit.remove_decorator_property(source, "Component", "standalone")
            if not found:
                self._warn(SHELL_SOURCE, "no @Component decorator")
            source, _ = source_edit.remove_decorator_property(source, "Component", "imports")
        tree.write_text(SHELL_SOURCE, source)

    # Routing

    def render_routes(self, bundle: GeneratedArtifactBundle) -> str:
        """Route list: a default redirect to the first component, then one route per component."""
        prefix = self.options.component_prefix
        names = list(bundle.components)
        if not names:
            return "[]"
        entries = [f"{{ path: '', redirectTo: '{route_path(names[0], prefix)}', pathMatch: 'full' }}"]
        entries.extend(
            f"{{ path: '{route_path(name, prefix)}', component: {component_symbol(name)} }}" for name in names
        )
        return "[\n  " + ",\n  ".join(entries) + "\n]"

    def _component_imports(self, routes: str, bundle: GeneratedArtifactBundle) -> List[Tuple[str, str]]:
        known = {component_symbol(name): name for name in bundle.components}
        imports = []
        for symbol in dict.fromkeys(referenced_components(routes)):
            if symbol in known:
                imports.append((symbol, component_import_path(known[symbol])))
        return imports

    def render_routing_source(self, routes: str, bundle: GeneratedArtifactBundle) -> str:
        imports = self._component_imports(routes, bundle)
        component_lines = "".join(f"import {{ {symbol} }} from '{path}';\n" for symbol, path in imports)
        if self.architecture.is_standalone:
            return (
                "import { Routes } from '@angular/router';\n"
                f"{component_lines}\n"
                f"export const routes: Routes = {routes};\n"
            )
        return (
            "import { NgModule } from '@angular/core';\n"
            "import { RouterModule, Routes } from '@angular/router';\n"
            f"{component_lines}\n"
            f"const routes: Routes = {routes};\n"
            "\n"
            "@NgModule({\n"
            "  imports: [RouterModule.forRoot(routes)],\n"
            "  exports: [RouterModule]\n"
            "})\n"
            "export class AppRoutingModule { }\n"
        )

    def has_expected_shape(self, source: str) -> bool:
        if self.architecture.is_standalone:
            return bool(re.search(r"export\s+const\s+routes\b", source)) and "@NgModule" not in source
        return (
            "@NgModule" in source
            and "RouterModule.forRoot" in source
            and source_edit.exports_symbol(source, "AppRoutingModule")
        )

    def adapt_routing(self, tree: ProjectTree, bundle: GeneratedArtifactBundle):
        """
        Make the routing file match the architecture.

        A bundle routing file in the right shape only gets missing component
        imports; one in the wrong shape is re-wrapped around its route list;
        without one, routes are synthesized from the components.
        """
        if not self.options.include_routing:
            return

        target = routing_file(self.architecture)
        if bundle.routing:
            current = tree.read_text(target) if tree.exists(target) else bundle.routing
            if self.has_expected_shape(current):
                source = source_edit.ensure_named_import(current, "Routes", "@angular/router")
                source = source_edit.ensure_named_imports(source, self._component_imports(current, bundle))
                tree.write_text(target, source)
                return
            routes = extract_routes_array(current)
            if not routes:
                self._warn(target, "could not find a route list in the generated routing file; routes synthesized")
                routes = self.render_routes(bundle)
        else:
            routes = self.render_routes(bundle)

        tree.write_text(target, self.render_routing_source(routes, bundle))
