"""
Raster previews of extracted canvas elements.
"""

import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from PIL import Image, ImageColor, ImageDraw, ImageFont

from sketchforge.errors import FilesystemError
from sketchforge.models import CANVAS_SIZE

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")

Color = Tuple[int, int, int]


class PreviewRenderer:
    """Draws elements on a white logical canvas and saves JPEG previews."""

    def __init__(self, size: int = CANVAS_SIZE, quality: int = 85):
        """
        Initialize the renderer.

        Args:
            size: Output side in pixels; the canvas is always CANVAS_SIZE units.
            quality: JPEG quality.
        """
        self.size = size
        self.quality = quality
        self.scale = size / CANVAS_SIZE

    @staticmethod
    def parse_color(value: Optional[str], default: Optional[Color]) -> Optional[Color]:
        if not value or value.strip().lower() in ("none", "transparent"):
            return default
        try:
            return ImageColor.getrgb(value.strip())[:3]
        except ValueError:
            return default

    def _xy(self, *values: float) -> List[float]:
        return [v * self.scale for v in values]

    def _font(self, size: float):
        return ImageFont.load_default(size=max(8, size * self.scale))

    def draw_element(self, draw: ImageDraw.ImageDraw, element: Any):
        kind = element.type
        fill = self.parse_color(element.fill, None)
        outline = self.parse_color(element.stroke, (0, 0, 0))
        width = max(1, int(round((element.stroke_width or 2) * self.scale)))

        if kind == "rectangle":
            box = self._xy(element.left, element.top, element.left + element.width, element.top + element.height)
            draw.rectangle(box, fill=fill, outline=outline, width=width)
        elif kind == "circle":
            diameter = element.radius * 2
            box = self._xy(element.left, element.top, element.left + diameter, element.top + diameter)
            draw.ellipse(box, fill=fill, outline=outline, width=width)
        elif kind == "triangle":
            points = self._xy(
                element.left + element.width / 2, element.top,
                element.left, element.top + element.height,
                element.left + element.width, element.top + element.height,
            )
            draw.polygon(points, fill=fill, outline=outline, width=width)
        elif kind == "line":
            draw.line(self._xy(*element.points), fill=outline, width=width)
        elif kind == "text":
            color = self.parse_color(element.fill, (0, 0, 0))
            draw.text(self._xy(element.left, element.top), element.text, fill=color, font=self._font(element.font_size))
        elif kind == "path":
            numbers = [float(n) for n in _NUMBER.findall(element.path)]
            if len(numbers) >= 4:
                points = self._xy(*numbers[: len(numbers) // 2 * 2])
                draw.line(points, fill=outline, width=width, joint="curve")

    def render(self, elements: Sequence[Any]) -> Image.Image:
        image = Image.new("RGB", (self.size, self.size), "white")
        draw = ImageDraw.Draw(image)
        for element in elements:
            try:
                self.draw_element(draw, element)
            except (ValueError, TypeError) as e:
                logger.info("Skipping %s element in preview: %s", getattr(element, "type", "?"), e)
        return image

    def render_to_file(self, elements: Sequence[Any], output_path: Union[str, Path]) -> Path:
        """
        Render elements and save them as a JPEG.

        Raises:
            FilesystemError: If the preview cannot be written.
        """
        output_path = Path(output_path)
        image = self.render(elements)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            image.save(output_path, format="JPEG", quality=self.quality)
        except OSError as e:
            raise FilesystemError(f"Could not save preview {output_path}: {e}") from e
        return output_path
