"""
MiniApp - application host.

Collects service registrations and routes, composes the middleware
pipeline and exposes it as an ASGI 3 application.

Example:
    app = MiniApp()
    app.add_singleton(Greeter)
    app.add_route("GET", "/hello", HomeController, "hello")
    app.use_logging()
    app.use_mvc()

    app.serve(port=8000)   # or: uvicorn mymodule:app
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Type

from .cancellation import CancellationToken
from .config import ConfigLoader, MvcConfig
from .context import AppContext
from .controller.finder import RouteTableActionFinder
from .controller.metadata import ActionDescriptor
from .controller.middleware import MvcMiddleware
from .di import ClassProvider, Container, FactoryProvider, ValueProvider
from .middleware import Handler, LoggingMiddleware, Middleware, MiddlewareStack
from .request import Request
from .response import HttpStatus, StringContent
from .views import JinjaViewEngine, ViewEngine


class MiniApp:
    """
    ASGI application wiring the MVC dispatch core together.

    Registrations are accepted until the app is built (explicitly with
    ``build()``, at lifespan startup, or on the first request). After that
    the container is frozen and only read.
    """

    def __init__(self, config: Optional[MvcConfig] = None, container: Optional[Container] = None):
        self.config = config or MvcConfig()
        self.container = container or Container(scope="app")
        self.routes = RouteTableActionFinder()
        self.middleware_stack = MiddlewareStack()
        self.logger = logging.getLogger("minimvc.app")
        self._handler: Optional[Handler] = None

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env", **overrides: Any) -> "MiniApp":
        """Create an app configured from .env, MINIMVC_* variables and overrides."""
        loader = ConfigLoader.load(env_file=env_file, overrides=overrides or None)
        return cls(loader.get_config(MvcConfig))

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def add_singleton(self, token: Type, implementation: Optional[Type] = None) -> "MiniApp":
        self.container.register(ClassProvider(implementation or token, scope="singleton", token=token))
        return self

    def add_scoped(self, token: Type, implementation: Optional[Type] = None) -> "MiniApp":
        """One instance per dispatch."""
        self.container.register(ClassProvider(implementation or token, scope="request", token=token))
        return self

    def add_transient(self, token: Type, implementation: Optional[Type] = None) -> "MiniApp":
        self.container.register(ClassProvider(implementation or token, scope="transient", token=token))
        return self

    def add_instance(self, token: Type, instance: Any) -> "MiniApp":
        self.container.register(ValueProvider(instance, token=token))
        return self

    def add_factory(self, factory: Callable, scope: str = "singleton", token: Optional[Type] = None) -> "MiniApp":
        self.container.register(FactoryProvider(factory, scope=scope, token=token))
        return self

    def use_views(
        self,
        engine: Optional[ViewEngine] = None,
        views_folder: Optional[str] = None,
    ) -> "MiniApp":
        """Register the view engine used by ViewResult."""
        if engine is None:
            engine = JinjaViewEngine(
                views_folder=views_folder or self.config.views_folder,
                autoescape=self.config.views_autoescape,
            )
        self.container.register(ValueProvider(engine, token=ViewEngine, name="view_engine"))
        return self

    # ------------------------------------------------------------------
    # Routes and pipeline
    # ------------------------------------------------------------------

    def add_route(self, method: str, path: str, controller_cls: Type, action: str) -> ActionDescriptor:
        return self.routes.add(method, path, controller_cls, action)

    def use(self, middleware: Middleware, priority: int = 50, name: Optional[str] = None) -> "MiniApp":
        if self._handler is not None:
            raise RuntimeError("Cannot add middleware after the app has been built")
        self.middleware_stack.add(middleware, priority=priority, name=name)
        return self

    def use_logging(self, priority: int = 10) -> "MiniApp":
        """Add request logging, warning above ``config.slow_request_ms``."""
        return self.use(LoggingMiddleware(self.config.slow_request_ms), priority=priority, name="logging")

    def use_mvc(self, priority: int = 100) -> "MiniApp":
        """Add the MVC dispatch stage (late in the pipeline by default)."""
        return self.use(MvcMiddleware(self.routes, self.container, self.config), priority=priority, name="mvc")

    def build(self) -> Handler:
        """Freeze the container and compose the pipeline (idempotent)."""
        if self._handler is None:
            self.container.freeze()
            self._handler = self.middleware_stack.build_handler(self._not_found)
            self.logger.debug(
                "Built pipeline with %d middleware and %d routes",
                len(self.middleware_stack),
                len(self.routes),
            )
        return self._handler

    @staticmethod
    async def _not_found(context: AppContext, cancellation: CancellationToken) -> None:
        context.response.status = HttpStatus.NOT_FOUND
        context.response.set_content(StringContent("Not Found"))

    # ------------------------------------------------------------------
    # ASGI
    # ------------------------------------------------------------------

    async def handle(self, context: AppContext, cancellation: Optional[CancellationToken] = None) -> None:
        """Run one request through the pipeline."""
        handler = self.build()
        await handler(context, cancellation or CancellationToken())

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            self.logger.warning("Unsupported ASGI scope type: %s", scope_type)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable) -> None:
        request = Request(
            scope,
            receive,
            max_body_size=self.config.max_body_size,
            json_max_depth=self.config.json_max_depth,
        )
        context = AppContext(request)
        await self.handle(context, CancellationToken())
        await context.response.send_asgi(send)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    self.build()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    self.logger.error("Startup error: %s", e, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.container.shutdown()
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    self.logger.error("Shutdown error: %s", e, exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break

    def serve(self, host: str = "127.0.0.1", port: int = 8000, log_level: str = "info") -> None:
        """Run the app with uvicorn."""
        import uvicorn

        self.logger.info("Starting uvicorn server on %s:%s", host, port)
        uvicorn.run(self, host=host, port=port, log_level=log_level)
