"""
Hosts
-----
Window + event system the frame loop runs inside.

- GlfwHost:   GLFW window with an OpenGL 4.3 core context (ModernGL), GPU backend
- PygameHost: pygame display, CPU backend

Keys: ESC = quit
"""

import logging

import glfw
import moderngl
import pygame

from .errors import DispatchError

logger = logging.getLogger(__name__)


class GlfwHost:
    def __init__(self, config):
        if not glfw.init():
            raise DispatchError("glfw.init() failed")

        glfw.window_hint(glfw.CONTEXT_VERSION_MAJOR, 4)
        glfw.window_hint(glfw.CONTEXT_VERSION_MINOR, 3)
        glfw.window_hint(glfw.OPENGL_PROFILE, glfw.OPENGL_CORE_PROFILE)
        glfw.window_hint(glfw.DOUBLEBUFFER, glfw.TRUE)

        width, height = config.window_size
        self.window = glfw.create_window(width, height, config.title, None, None)
        if not self.window:
            glfw.terminate()
            raise DispatchError("glfw.create_window() failed (OpenGL 4.3 required)")

        glfw.make_context_current(self.window)
        glfw.swap_interval(1 if config.vsync else 0)

        try:
            self.ctx = moderngl.create_context(require=430)
        except Exception as exc:  # moderngl raises plain Exception for missing GL versions
            glfw.terminate()
            raise DispatchError(f"cannot create OpenGL 4.3 context: {exc}") from exc

        self.ctx.enable(moderngl.BLEND)
        self.ctx.enable(moderngl.PROGRAM_POINT_SIZE)
        logger.info("OpenGL: %s (%s)", self.ctx.info.get("GL_RENDERER"), self.ctx.info.get("GL_VERSION"))

    def framebuffer_size(self):
        return glfw.get_framebuffer_size(self.window)

    def poll_events(self):
        glfw.poll_events()
        if glfw.get_key(self.window, glfw.KEY_ESCAPE) == glfw.PRESS:
            glfw.set_window_should_close(self.window, True)

    def should_close(self) -> bool:
        return bool(glfw.window_should_close(self.window))

    def present(self):
        glfw.swap_buffers(self.window)

    def close(self):
        self.ctx.release()
        glfw.terminate()


class PygameHost:
    def __init__(self, config):
        pygame.init()
        try:
            self.screen = pygame.display.set_mode(tuple(config.window_size), pygame.DOUBLEBUF)
        except pygame.error as exc:
            pygame.quit()
            raise DispatchError(f"cannot open pygame display: {exc}") from exc
        pygame.display.set_caption(config.title)
        self._closing = False

    def poll_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._closing = True
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self._closing = True

    def should_close(self) -> bool:
        return self._closing

    def present(self):
        pygame.display.flip()

    def close(self):
        pygame.quit()
