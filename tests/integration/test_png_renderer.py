"""Tests for the PNG preview renderer."""

import os
import tempfile

from PIL import Image

from orthoflow import Diagram, EdgeRoutingState
from orthoflow.png_renderer import PNGRenderer, render_to_png


def temp_png_path():
    with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
        return f.name


class TestPNGRenderer:
    """Tests for PNGRenderer class."""

    def test_render_routed_diagram(self, diagram):
        """Render two connected nodes to PNG."""
        diagram.add_edge("e1", "a", "b")
        renderer = PNGRenderer()
        output_path = temp_png_path()

        try:
            result = renderer.render(diagram, output_path)
            assert result == output_path
            assert os.path.exists(output_path)
            assert os.path.getsize(output_path) > 0
            with Image.open(output_path) as img:
                assert img.size == (960, 680)
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)

    def test_render_with_scale(self, diagram):
        """Scale and margin set the image size."""
        diagram.add_edge("e1", "a", "b")
        renderer = PNGRenderer(scale=1, margin=10)
        output_path = temp_png_path()

        try:
            renderer.render(diagram, output_path)
            with Image.open(output_path) as img:
                assert img.size == (420, 280)
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)

    def test_render_rounded_with_handles(self):
        """Rounded edges and handle dots render."""
        diagram = Diagram(edge_type="rounded", corner_radius=12)
        diagram.add_node("a", 0, 0, 100, 60)
        diagram.add_node("b", 300, 200, 100, 60)
        diagram.add_edge("e1", "a", "b")
        output_path = temp_png_path()

        try:
            render_to_png(diagram, output_path, draw_handles=True)
            assert os.path.getsize(output_path) > 0
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)

    def test_render_fallback_edge(self, diagram):
        """A fallback edge still renders."""
        diagram.add_edge("e1", "a", "b")
        state = diagram.routing_state("e1")
        diagram.commit(
            "e1",
            EdgeRoutingState(
                control_points=state.control_points,
                use_orthogonal_routing=False,
                selected_handles=state.selected_handles,
            ),
        )
        assert diagram.render_edge("e1").is_fallback
        output_path = temp_png_path()

        try:
            render_to_png(diagram, output_path)
            assert os.path.getsize(output_path) > 0
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)

    def test_render_empty(self):
        """An empty diagram gives a placeholder image."""
        output_path = temp_png_path()

        try:
            render_to_png(Diagram(), output_path)
            with Image.open(output_path) as img:
                assert img.size == (200, 100)
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)
