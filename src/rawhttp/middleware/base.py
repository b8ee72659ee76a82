"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the middleware protocol and the pipeline for chaining middleware
around the router (Chain of Responsibility).

    ┌─────────────────────────────────────────────────────────────────────┐
    │              CHAIN OF RESPONSIBILITY - REQUEST FLOW                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ──────────────────────────────────────────────►           │
    │                                                                      │
    │   ┌──────────────┐    ┌──────────────┐    ┌──────────────┐          │
    │   │ Middleware 1 │───►│ Middleware 2 │───►│ router.handle│          │
    │   └──────────────┘    └──────────────┘    └──────────────┘          │
    │     [before]            [before]            route + run              │
    │     [after]             [after]             handler                  │
    │                                                                      │
    │   ◄────────────────────────────────────────────── Response          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each middleware may look at the request, call ``next`` (or not, to
short-circuit), and look at or replace the response on the way out.

Middleware must not add headers to responses: the byte layout of every
response is fixed and clients compare it exactly.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware, or the final handler
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Every middleware implements:

        def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse

    and must call ``next(request)`` to continue the chain unless it
    answers the request itself.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: The next handler in the chain

        Returns:
            HTTP response (either from next() or short-circuited)
        """
        pass

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware together around a final handler.

    =========================================================================
    PIPELINE ARCHITECTURE
    =========================================================================

        pipeline.add(A)     # First added = outermost
        pipeline.add(B)

            ┌───────────────────────────────────────┐
            │  A                                    │
            │  ┌─────────────────────────────────┐  │
            │  │  B                              │  │
            │  │  ┌───────────────────────────┐  │  │
            │  │  │   router.handle           │  │  │
            │  │  └───────────────────────────┘  │  │
            │  └─────────────────────────────────┘  │
            └───────────────────────────────────────┘

    Request flows inward (A, B, handler); response flows outward (B, A).

    =========================================================================
    USAGE
    =========================================================================

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        handler = pipeline.wrap(router.handle)
        response = handler(request)

    =========================================================================
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """
        Add middleware to the pipeline (first added = outermost).

        Returns:
            Self for method chaining
        """
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with all middleware in the pipeline.

        =====================================================================
        HOW WRAPPING WORKS
        =====================================================================

        Given: [MW1, MW2] and handler

        Step 1: current = handler
        Step 2: current = MW2 around current
        Step 3: current = MW1 around current

        Final: MW1 → MW2 → handler

        =====================================================================
        """
        current = handler

        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)

        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        """Closure binding one middleware to the handler after it."""
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped
