"""
PNG preview of a routed diagram.

Draws every node box and every edge's rendered stroke with Pillow, so a
routing result can be inspected or attached to a bug report.
"""

import math
from typing import TYPE_CHECKING, List, Tuple

from PIL import Image, ImageDraw, ImageFont

from .geometry import Point

if TYPE_CHECKING:
    from .diagram import Diagram


class PNGRenderer:
    """Renders a Diagram's nodes and routed edges as a PNG image."""

    def __init__(
        self,
        scale: int = 2,  # For high-resolution output
        margin: int = 40,
        arrow_size: int = 8,
        draw_handles: bool = False,
    ):
        self.scale = scale
        self.margin = margin
        self.arrow_size = arrow_size
        self.draw_handles = draw_handles

        # Colors
        self.bg_color = (255, 255, 255)
        self.box_fill = (255, 255, 255)
        self.box_outline = (0, 0, 0)
        self.text_color = (0, 0, 0)
        self.line_color = (0, 0, 0)
        self.fallback_color = (200, 0, 0)
        self.handle_color = (120, 120, 120)

    def render(self, diagram: "Diagram", output_path: str = "diagram.png") -> str:
        """
        Render the diagram as a PNG image.

        Args:
            diagram: Diagram to draw
            output_path: Path to save the PNG file

        Returns:
            Path to the saved PNG file
        """
        nodes = diagram.nodes
        rendered = diagram.render_all()

        if not nodes:
            # Create a small placeholder image
            img = Image.new("RGB", (200, 100), self.bg_color)
            img.save(output_path)
            return output_path

        xs: List[float] = []
        ys: List[float] = []
        for node in nodes:
            xs.extend([node.bounds.x, node.bounds.x2])
            ys.extend([node.bounds.y, node.bounds.y2])
        for edge in rendered.values():
            xs.extend(p.x for p in edge.points if math.isfinite(p.x))
            ys.extend(p.y for p in edge.points if math.isfinite(p.y))

        self._origin = (min(xs), min(ys))
        canvas_width = int((max(xs) - min(xs) + 2 * self.margin) * self.scale)
        canvas_height = int((max(ys) - min(ys) + 2 * self.margin) * self.scale)

        img = Image.new("RGB", (canvas_width, canvas_height), self.bg_color)
        draw = ImageDraw.Draw(img)

        for edge in rendered.values():
            color = self.fallback_color if edge.is_fallback else self.line_color
            self._draw_stroke(draw, edge.points, color)

        for node in nodes:
            self._draw_box(draw, node.bounds, node.id)
            if self.draw_handles:
                for handle in node.handles:
                    self._draw_handle(draw, handle.position)

        img.save(output_path, "PNG", dpi=(300, 300))
        return output_path

    def _to_canvas(self, point: Point) -> Tuple[float, float]:
        ox, oy = self._origin
        return (
            (point.x - ox + self.margin) * self.scale,
            (point.y - oy + self.margin) * self.scale,
        )

    def _draw_box(self, draw: ImageDraw.ImageDraw, bounds, label: str):
        """Draw a box with border and its id centered."""
        line_width = max(1, self.scale)
        x1, y1 = self._to_canvas(Point(bounds.x, bounds.y))
        x2, y2 = self._to_canvas(Point(bounds.x2, bounds.y2))
        draw.rectangle(
            [x1, y1, x2, y2],
            fill=self.box_fill,
            outline=self.box_outline,
            width=line_width,
        )

        font = ImageFont.load_default()
        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        text_h = bbox[3] - bbox[1]
        draw.text(
            ((x1 + x2 - text_w) / 2, (y1 + y2 - text_h) / 2),
            label,
            fill=self.text_color,
            font=font,
        )

    def _draw_stroke(self, draw: ImageDraw.ImageDraw, points: List[Point], color):
        """Draw an edge's polyline with an arrowhead at the target."""
        canvas_points = [
            self._to_canvas(p) for p in points if math.isfinite(p.x) and math.isfinite(p.y)
        ]
        if len(canvas_points) < 2:
            return
        line_width = max(1, self.scale)
        draw.line(canvas_points, fill=color, width=line_width, joint="curve")

        # Last point distinct from the tip gives the arrow direction
        tip = canvas_points[-1]
        for previous in reversed(canvas_points[:-1]):
            if previous != tip:
                self._draw_arrowhead(draw, previous, tip, color)
                break

    def _draw_arrowhead(
        self,
        draw: ImageDraw.ImageDraw,
        from_point: Tuple[float, float],
        to_point: Tuple[float, float],
        color,
    ):
        """Draw an arrowhead at the end of a line."""
        x1, y1 = from_point
        x2, y2 = to_point

        arrow_size = self.arrow_size * self.scale
        angle = math.atan2(y2 - y1, x2 - x1)
        angle1 = angle + math.pi * 0.8
        angle2 = angle - math.pi * 0.8

        ax1 = x2 + arrow_size * math.cos(angle1)
        ay1 = y2 + arrow_size * math.sin(angle1)
        ax2 = x2 + arrow_size * math.cos(angle2)
        ay2 = y2 + arrow_size * math.sin(angle2)

        draw.polygon([(x2, y2), (ax1, ay1), (ax2, ay2)], fill=color)

    def _draw_handle(self, draw: ImageDraw.ImageDraw, position: Point):
        x, y = self._to_canvas(position)
        r = 2 * self.scale
        draw.ellipse([x - r, y - r, x + r, y + r], outline=self.handle_color)


def render_to_png(diagram: "Diagram", output_path: str = "diagram.png", **kwargs) -> str:
    """
    Convenience function to render a diagram to PNG.

    Args:
        diagram: Diagram to draw
        output_path: Path to save the PNG file
        **kwargs: Additional parameters for PNGRenderer

    Returns:
        Path to the saved PNG file
    """
    renderer = PNGRenderer(**kwargs)
    return renderer.render(diagram, output_path)
