import pyglet
from pyglet import gl
from pyglet.math import Mat4, Vec3


def setup_gl() -> None:
    gl.glClearColor(0.08, 0.08, 0.10, 1.0)
    gl.glEnable(gl.GL_BLEND)
    gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE_MINUS_SRC_ALPHA)


def set_top_down(window: pyglet.window.Window, center: tuple[float, float], pixels_per_unit: float) -> None:
    """Orthographic view looking down the y axis; world x maps to screen x, world z to screen y."""
    width, height = window.get_framebuffer_size()
    gl.glViewport(0, 0, width, height)
    window.projection = Mat4.orthogonal_projection(0.0, float(width), 0.0, float(height), -1.0, 1.0)

    cx, cz = center
    scale = Mat4.from_scale(Vec3(pixels_per_unit, pixels_per_unit, 1.0))
    to_screen = Mat4.from_translation(Vec3(width / 2.0, height / 2.0, 0.0))
    to_center = Mat4.from_translation(Vec3(-cx, -cz, 0.0))
    window.view = to_screen @ scale @ to_center


def set_2d(window: pyglet.window.Window) -> None:
    width, height = window.get_framebuffer_size()
    gl.glViewport(0, 0, width, height)
    window.projection = Mat4.orthogonal_projection(0.0, float(width), 0.0, float(height), -1.0, 1.0)
    window.view = Mat4()
