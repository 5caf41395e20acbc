"""
Prompt texts for sketch interpretation and project synthesis.
"""

from sketchforge.models import PromptVariant


EXTRACTION_SYSTEM_PROMPT = """You convert photographed or scanned hand-drawn sketches into
structured drawing objects for a vector canvas editor. You always answer with JSON."""


DETAILED_EXTRACTION_PROMPT = """Analyze this sketch and extract every visual element as a precise JSON object.

TASK: Return a JSON object with an "elements" array holding all detected objects.
All coordinates and sizes are expressed on a logical canvas of 1000x1000 units,
regardless of the pixel size of the image.

Work through the sketch in this order:
1. Main outlines and borders
2. Basic geometric figures
3. Straight lines and connectors
4. Text and typographic elements
5. Free-hand strokes that need a path
6. Spatial relationships between elements
7. Colors consistent with the tones in the image

If an element does not fit a basic figure, represent it faithfully with "path".

Each object must follow the format for its type:

1. RECTANGLE:
{"type": "rectangle", "left": <x>, "top": <y>, "width": <w>, "height": <h>,
 "fill": "<hex color>", "stroke": "<hex color>", "objectId": "<unique id>"}

2. CIRCLE:
{"type": "circle", "left": <x>, "top": <y>, "radius": <r>,
 "fill": "<hex color>", "stroke": "<hex color>", "objectId": "<unique id>"}

3. TRIANGLE:
{"type": "triangle", "left": <x>, "top": <y>, "width": <w>, "height": <h>,
 "fill": "<hex color>", "stroke": "<hex color>", "objectId": "<unique id>"}

4. LINE:
{"type": "line", "points": [<x1>, <y1>, <x2>, <y2>], "stroke": "<hex color>",
 "strokeWidth": 2, "objectId": "<unique id>"}

5. TEXT:
{"type": "text", "left": <x>, "top": <y>, "text": "<detected text>", "fill": "<hex color>",
 "fontFamily": "Helvetica", "fontSize": 36, "fontWeight": "400", "objectId": "<unique id>"}

6. PATH (free-hand drawing):
{"type": "path", "path": "<SVG path data>", "fill": "<hex color>", "stroke": "<hex color>",
 "strokeWidth": <width>, "objectId": "<unique id>"}

Return ONLY valid JSON, without explanations or markdown."""


SIMPLIFIED_EXTRACTION_PROMPT = """Look at this sketch or diagram and convert it into JSON objects.

Return a JSON object with an "elements" array of the shapes you detect, on a 1000x1000 canvas.

Recognized shapes:
- Rectangle: {"type": "rectangle", "left": X, "top": Y, "width": W, "height": H, "fill": "#color", "stroke": "#color"}
- Circle: {"type": "circle", "left": X, "top": Y, "radius": R, "fill": "#color", "stroke": "#color"}
- Triangle: {"type": "triangle", "left": X, "top": Y, "width": W, "height": H, "fill": "#color", "stroke": "#color"}
- Line: {"type": "line", "points": [X1, Y1, X2, Y2], "stroke": "#color", "strokeWidth": 2}
- Text: {"type": "text", "left": X, "top": Y, "text": "text", "fill": "#color", "fontSize": 36}
- Path: {"type": "path", "path": "SVG path data", "stroke": "#color"}

Give each element an "objectId".

Answer with the JSON only."""


MINIMAL_EXTRACTION_PROMPT = """Look at this image and describe it with basic shapes as JSON.

Format:
{
  "elements": [
    {"type": "rectangle", "left": 100, "top": 100, "width": 200, "height": 100, "fill": "#cccccc"},
    {"type": "circle", "left": 400, "top": 300, "radius": 50, "fill": "#dddddd"},
    {"type": "line", "points": [500, 500, 700, 700], "stroke": "#000000"}
  ]
}

Only identify basic shapes, as best you can. If nothing recognizable is present,
answer with {"elements": []}."""


EXTRACTION_PROMPTS = {
    PromptVariant.DETAILED: DETAILED_EXTRACTION_PROMPT,
    PromptVariant.SIMPLIFIED: SIMPLIFIED_EXTRACTION_PROMPT,
    PromptVariant.MINIMAL: MINIMAL_EXTRACTION_PROMPT,
}


SYNTHESIS_SYSTEM_PROMPT = """You are an expert Angular developer. You turn UI mockups and
diagrams into complete, well-structured Angular application code and always answer
with a single JSON object."""


SYNTHESIS_PROMPT_TEMPLATE = """Analyze this diagram or visual mockup and generate a complete Angular project based on it.
Provide TypeScript sources (.ts), HTML templates (.html) and stylesheets for every component.

Guidelines:
1. Interpret the image and identify every visual component (forms, tables, buttons, lists, ...).
2. Generate all Angular components needed, with complete and working code.
3. Keep the project structure organized and modular.
4. Write detailed styles so the result matches the image closely.
5. Identify CRUD operations and generate services that consume a REST API.
6. Create interfaces and models for the data.
7. Use reactive forms for data entry, with validation and error handling.
8. If the image shows several screens, generate navigation between them.

Naming rules:
- Every key below is kebab-case (for example "login-form").
- Service keys name the entity only ("user", not "user-service").
- A component named "login-form" exports the class LoginFormComponent and uses the selector "login-form".
- A service named "user" exports the class UserService.

Project options: {options}

Answer with one JSON object with this structure:

{{
  "projectStructure": {{"description": "overview of the project and its main components"}},
  "components": {{
    "component-name": {{"ts": "contents of the .ts file", "html": "contents of the .html file", "{style_key}": "contents of the stylesheet"}}
  }},
  "services": {{"service-name": "service source implementing CRUD operations"}},
  "models": {{"model-name": "interface or class source"}},
  "modules": {{"module-name": "module source"}},
  "routing": "routing configuration source, or null",
  "appComponent": {{"ts": "...", "html": "...", "{style_key}": "..."}} or null
}}

Make sure the JSON is valid and that every component carries all the code it needs."""
