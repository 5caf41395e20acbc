"""
Option-driven generation of the base project layout.
"""

import html
import json
import logging
from typing import Any, Dict, List

from sketchforge.models import ArchitectureSignals, ProjectOptions, StylingAddOn
from sketchforge.project.architecture import (
    APP_CONFIG,
    APP_MODULE,
    ROUTES_FILE,
    ROUTING_MODULE,
    SHELL_SOURCE,
    SHELL_STYLESHEET,
    SHELL_TEMPLATE,
    select_architecture,
    shell_style_path,
)
from sketchforge.project.tree import ProjectTree

logger = logging.getLogger(__name__)


MATERIAL_MODULES = [
    ("MatButtonModule", "@angular/material/button"),
    ("MatCardModule", "@angular/material/card"),
    ("MatInputModule", "@angular/material/input"),
    ("MatToolbarModule", "@angular/material/toolbar"),
]


def _json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2) + "\n"


class SkeletonBuilder:
    """
    Builds a fresh ProjectTree holding everything except generated artifacts.

    The result is a pure function of the options: no network or model calls.
    """

    def framework_range(self, options: ProjectOptions) -> str:
        if options.major_version:
            return f"^{options.major_version}.{options.minor_version}.0"
        return "latest"

    def package_json(self, options: ProjectOptions) -> str:
        ng = self.framework_range(options)
        modern = options.major_version >= 17
        dependencies = {
            "@angular/animations": ng,
            "@angular/common": ng,
            "@angular/compiler": ng,
            "@angular/core": ng,
            "@angular/forms": ng,
            "@angular/platform-browser": ng,
            "@angular/platform-browser-dynamic": ng,
            "@angular/router": ng,
            "rxjs": "~7.8.0",
            "tslib": "^2.3.0",
            "zone.js": "~0.14.0" if modern else "~0.13.0",
        }
        dev_dependencies = {
            "@angular-devkit/build-angular": ng,
            "@angular/cli": ng.replace("^", "~"),
            "@angular/compiler-cli": ng,
            "@types/jasmine": "~5.1.0" if modern else "~4.3.0",
            "jasmine-core": "~5.1.0" if modern else "~4.5.0",
            "karma": "~6.4.0",
            "karma-chrome-launcher": "~3.2.0",
            "karma-coverage": "~2.2.0",
            "karma-jasmine": "~5.1.0",
            "karma-jasmine-html-reporter": "~2.1.0",
            "typescript": "~5.4.2" if modern else "~5.1.3",
        }
        if options.styling == StylingAddOn.MATERIAL:
            dependencies["@angular/material"] = ng
            dependencies["@angular/cdk"] = ng
        elif options.styling == StylingAddOn.TAILWIND:
            dev_dependencies["tailwindcss"] = "^3.4.0"
            dev_dependencies["postcss"] = "^8.4.0"
            dev_dependencies["autoprefixer"] = "^10.4.0"

        return _json({
            "name": options.package_name,
            "version": "0.0.0",
            "scripts": {
                "ng": "ng",
                "start": "ng serve",
                "build": "ng build",
                "watch": "ng build --watch --configuration development",
                "test": "ng test",
            },
            "private": True,
            "dependencies": dict(sorted(dependencies.items())),
            "devDependencies": dict(sorted(dev_dependencies.items())),
        })

    def angular_json(self, options: ProjectOptions) -> str:
        ext = options.style_format.value
        styles: List[str] = [f"src/styles.{ext}"]
        if options.styling == StylingAddOn.MATERIAL:
            styles.insert(0, "@angular/material/prebuilt-themes/indigo-pink.css")

        build_options: Dict[str, Any] = {
            "outputPath": f"dist/{options.package_name}",
            "index": "src/index.html",
            "polyfills": ["zone.js"],
            "tsConfig": "tsconfig.app.json",
            "inlineStyleLanguage": ext,
            "assets": ["src/assets"],
            "styles": styles,
            "scripts": [],
        }
        if options.major_version >= 17:
            builder = "@angular-devkit/build-angular:application"
            build_options["browser"] = "src/main.ts"
        else:
            builder = "@angular-devkit/build-angular:browser"
            build_options["main"] = "src/main.ts"

        return _json({
            "$schema": "./node_modules/@angular/cli/lib/config/schema.json",
            "version": 1,
            "newProjectRoot": "projects",
            "projects": {
                options.package_name: {
                    "projectType": "application",
                    "schematics": {"@schematics/angular:component": {"style": ext}},
                    "root": "",
                    "sourceRoot": "src",
                    "prefix": options.component_prefix,
                    "architect": {
                        "build": {
                            "builder": builder,
                            "options": build_options,
                            "configurations": {
                                "production": {"outputHashing": "all"},
                                "development": {"optimization": False, "sourceMap": True},
                            },
                            "defaultConfiguration": "production",
                        },
                        "serve": {
                            "builder": "@angular-devkit/build-angular:dev-server",
                            "configurations": {
                                "production": {"buildTarget": f"{options.package_name}:build:production"},
                                "development": {"buildTarget": f"{options.package_name}:build:development"},
                            },
                            "defaultConfiguration": "development",
                        },
                    },
                }
            },
        })

    def tsconfig_json(self) -> str:
        return _json({
            "compileOnSave": False,
            "compilerOptions": {
                "baseUrl": "./",
                "outDir": "./dist/out-tsc",
                "forceConsistentCasingInFileNames": True,
                "strict": True,
                "noImplicitOverride": True,
                "noPropertyAccessFromIndexSignature": True,
                "noImplicitReturns": True,
                "noFallthroughCasesInSwitch": True,
                "sourceMap": True,
                "declaration": False,
                "downlevelIteration": True,
                "experimentalDecorators": True,
                "moduleResolution": "node",
                "importHelpers": True,
                "target": "ES2022",
                "module": "ES2022",
                "useDefineForClassFields": False,
                "lib": ["ES2022", "dom"],
            },
            "angularCompilerOptions": {
                "enableI18nLegacyMessageIdFormat": False,
                "strictInjectionParameters": True,
                "strictInputAccessModifiers": True,
                "strictTemplates": True,
            },
        })

    def tsconfig_app_json(self) -> str:
        return _json({
            "extends": "./tsconfig.json",
            "compilerOptions": {"outDir": "./out-tsc/app", "types": []},
            "files": ["src/main.ts"],
            "include": ["src/**/*.d.ts"],
        })

    def index_html(self, options: ProjectOptions) -> str:
        fonts = ""
        if options.styling == StylingAddOn.MATERIAL:
            fonts = (
                '  <link href="https://fonts.googleapis.com/css2?family=Roboto:wght@300;400;500&display=swap" rel="stylesheet">\n'
                '  <link href="https://fonts.googleapis.com/icon?family=Material+Icons" rel="stylesheet">\n'
            )
        return (
            "<!doctype html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '  <meta charset="utf-8">\n'
            f"  <title>{html.escape(options.display_name)}</title>\n"
            '  <base href="/">\n'
            '  <meta name="viewport" content="width=device-width, initial-scale=1">\n'
            f"{fonts}"
            "</head>\n"
            "<body>\n"
            "  <app-root></app-root>\n"
            "</body>\n"
            "</html>\n"
        )

    def main_ts(self, standalone: bool) -> str:
        if standalone:
            return (
                "import { bootstrapApplication } from '@angular/platform-browser';\n"
                "import { appConfig } from './app/app.config';\n"
                "import { AppComponent } from './app/app.component';\n"
                "\n"
                "bootstrapApplication(AppComponent, appConfig)\n"
                "  .catch((err) => console.error(err));\n"
            )
        return (
            "import { platformBrowserDynamic } from '@angular/platform-browser-dynamic';\n"
            "import { AppModule } from './app/app.module';\n"
            "\n"
            "platformBrowserDynamic().bootstrapModule(AppModule)\n"
            "  .catch((err) => console.error(err));\n"
        )

    def global_styles(self, options: ProjectOptions) -> str:
        parts = []
        if options.styling == StylingAddOn.TAILWIND:
            parts.append("@tailwind base;\n@tailwind components;\n@tailwind utilities;\n")
        if options.styling == StylingAddOn.MATERIAL and options.style_format.value == "scss":
            parts.append("@use '@angular/material' as mat;\n\n@include mat.core();\n")
        parts.append(
            "html, body {\n"
            "  height: 100%;\n"
            "  margin: 0;\n"
            "  padding: 0;\n"
            "  font-family: Arial, sans-serif;\n"
            "}\n"
            "\n"
            "* {\n"
            "  box-sizing: border-box;\n"
            "}\n"
        )
        if options.styling == StylingAddOn.MATERIAL:
            parts.append('body {\n  font-family: Roboto, "Helvetica Neue", sans-serif;\n}\n')
        return "\n".join(parts)

    def environment_ts(self, production: bool) -> str:
        return f"export const environment = {{\n  production: {'true' if production else 'false'}\n}};\n"

    def tailwind_config(self) -> str:
        return (
            "/** @type {import('tailwindcss').Config} */\n"
            "module.exports = {\n"
            "  content: ['./src/**/*.{html,ts}'],\n"
            "  theme: {\n"
            "    extend: {},\n"
            "  },\n"
            "  plugins: [],\n"
            "};\n"
        )

    def shell_source(self, options: ProjectOptions, standalone: bool) -> str:
        ext = options.style_format.value
        lines = ["import { Component } from '@angular/core';"]
        if standalone:
            lines.append("import { CommonModule } from '@angular/common';")
            lines.append("import { RouterOutlet } from '@angular/router';")
        lines.extend(["", "@Component({", "  selector: 'app-root',"])
        if standalone:
            lines.append("  standalone: true,")
            lines.append("  imports: [CommonModule, RouterOutlet],")
        lines.extend([
            "  templateUrl: './app.component.html',",
            f"  styleUrls: ['./app.component.{ext}']",
            "})",
            "export class AppComponent {",
            f"  title = {json.dumps(options.display_name)};",
            "}",
        ])
        return "\n".join(lines) + "\n"

    def shell_template(self, options: ProjectOptions) -> str:
        content = "<router-outlet></router-outlet>" if options.include_routing else "<p>Welcome!</p>"
        return (
            '<div class="app-container">\n'
            '  <header class="app-header">\n'
            "    <h1>{{ title }}</h1>\n"
            "  </header>\n"
            '  <main class="app-content">\n'
            f"    {content}\n"
            "  </main>\n"
            "</div>\n"
        )

    def app_module(self, options: ProjectOptions) -> str:
        imports = [
            ("NgModule", "@angular/core"),
            ("BrowserModule", "@angular/platform-browser"),
            ("HttpClientModule", "@angular/common/http"),
            ("FormsModule, ReactiveFormsModule", "@angular/forms"),
        ]
        module_imports = ["BrowserModule", "HttpClientModule", "FormsModule", "ReactiveFormsModule"]
        if options.include_routing:
            imports.append(("AppRoutingModule", "./app-routing.module"))
            module_imports.append("AppRoutingModule")
        if options.styling == StylingAddOn.MATERIAL:
            imports.append(("BrowserAnimationsModule", "@angular/platform-browser/animations"))
            module_imports.append("BrowserAnimationsModule")
            for symbol, module in MATERIAL_MODULES:
                imports.append((symbol, module))
                module_imports.append(symbol)
        imports.append(("AppComponent", "./app.component"))

        header = "".join(f"import {{ {symbol} }} from '{module}';\n" for symbol, module in imports)
        body = ",\n".join(f"    {symbol}" for symbol in module_imports)
        return (
            f"{header}\n"
            "@NgModule({\n"
            "  declarations: [\n"
            "    AppComponent\n"
            "  ],\n"
            "  imports: [\n"
            f"{body}\n"
            "  ],\n"
            "  providers: [],\n"
            "  bootstrap: [AppComponent]\n"
            "})\n"
            "export class AppModule { }\n"
        )

    def routing_module(self) -> str:
        return (
            "import { NgModule } from '@angular/core';\n"
            "import { RouterModule, Routes } from '@angular/router';\n"
            "\n"
            "const routes: Routes = [];\n"
            "\n"
            "@NgModule({\n"
            "  imports: [RouterModule.forRoot(routes)],\n"
            "  exports: [RouterModule]\n"
            "})\n"
            "export class AppRoutingModule { }\n"
        )

    def app_config(self, options: ProjectOptions) -> str:
        imports = [
            ("ApplicationConfig", "@angular/core"),
            ("provideHttpClient", "@angular/common/http"),
        ]
        providers = []
        if options.include_routing:
            imports.append(("provideRouter", "@angular/router"))
            imports.append(("routes", "./app.routes"))
            providers.append("provideRouter(routes)")
        providers.append("provideHttpClient()")
        if options.styling == StylingAddOn.MATERIAL:
            imports.append(("provideAnimations", "@angular/platform-browser/animations"))
            providers.append("provideAnimations()")

        header = "".join(f"import {{ {symbol} }} from '{module}';\n" for symbol, module in imports)
        body = ",\n".join(f"    {provider}" for provider in providers)
        return (
            f"{header}\n"
            "export const appConfig: ApplicationConfig = {\n"
            "  providers: [\n"
            f"{body}\n"
            "  ]\n"
            "};\n"
        )

    def routes_file(self) -> str:
        return "import { Routes } from '@angular/router';\n\nexport const routes: Routes = [];\n"

    def build(self, options: ProjectOptions) -> ProjectTree:
        """
        Write the skeleton for ``options`` into a new staging tree.

        Raises:
            FilesystemError: If the staging directory cannot be written; the
                partial tree is removed first.
        """
        architecture = select_architecture(ArchitectureSignals(version=options.major_version))
        standalone = architecture.is_standalone
        ext = options.style_format.value

        tree = ProjectTree.create(options.package_name)
        try:
            tree.write_text("package.json", self.package_json(options))
            tree.write_text("angular.json", self.angular_json(options))
            tree.write_text("tsconfig.json", self.tsconfig_json())
            tree.write_text("tsconfig.app.json", self.tsconfig_app_json())
            tree.write_text("src/index.html", self.index_html(options))
            tree.write_text("src/main.ts", self.main_ts(standalone))
            tree.write_text(f"src/styles.{ext}", self.global_styles(options))
            tree.write_text("src/environments/environment.ts", self.environment_ts(False))
            tree.write_text("src/environments/environment.prod.ts", self.environment_ts(True))
            tree.write_text("src/assets/.gitkeep", "")
            if options.styling == StylingAddOn.TAILWIND:
                tree.write_text("tailwind.config.js", self.tailwind_config())

            tree.write_text(SHELL_SOURCE, self.shell_source(options, standalone))
            tree.write_text(SHELL_TEMPLATE, self.shell_template(options))
            tree.write_text(shell_style_path(options), SHELL_STYLESHEET)

            if standalone:
                tree.write_text(APP_CONFIG, self.app_config(options))
                if options.include_routing:
                    tree.write_text(ROUTES_FILE, self.routes_file())
            else:
                tree.write_text(APP_MODULE, self.app_module(options))
                if options.include_routing:
                    tree.write_text(ROUTING_MODULE, self.routing_module())
        except Exception:
            tree.cleanup()
            raise

        logger.info("Built %s skeleton for %s (%d files)", architecture.kind.value, options.package_name, len(tree.files()))
        return tree
