"""Task API endpoint for Vercel.

All `/api/tasks/*` paths are rewritten to this function (see vercel.json);
routing below maps verb + path to the task services.
"""

from http.server import BaseHTTPRequestHandler
import asyncio
import json
import re
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import parse_qs, urlsplit

from src.models.user import AuthenticatedUser
from src.services import task_service, task_stats
from src.services.auth_guard import authenticate_request
from src.utils.errors import InternalError, NotFoundError, TaskDashboardError, ValidationError
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
_logger = get_structured_logger(__name__)


class Request:
    """Parsed request handed to route functions."""

    def __init__(self, method: str, path: str, query: dict, headers: dict, raw_body: Optional[bytes]):
        self.method = method
        self.path = path
        self.query = query
        self.headers = headers
        self.raw_body = raw_body
        self.user: Optional[AuthenticatedUser] = None
        self.path_params: dict[str, str] = {}

    def json(self) -> Any:
        # None means the body could not be read (bad Content-Length)
        if self.raw_body is None:
            raise ValidationError("Invalid JSON body")
        try:
            text = self.raw_body.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("Invalid JSON body")
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            raise ValidationError("Invalid JSON body")


RouteFn = Callable[[Request], Awaitable[tuple[int, Any]]]


async def _list_tasks(req: Request):
    tasks = await task_service.list_tasks(req.user, req.query)
    return 200, [t.to_response() for t in tasks]


async def _create_task(req: Request):
    task = await task_service.create_task(req.user, req.json())
    return 201, task.to_response()


async def _get_stats(req: Request):
    stats = await task_stats.get_task_stats(req.user)
    return 200, stats.to_response()


async def _get_notifications(req: Request):
    days = task_stats.parse_window_days(req.query.get("days"))
    notifications = await task_stats.get_due_notifications(req.user, days)
    return 200, [n.to_response() for n in notifications]


async def _get_task(req: Request):
    task = await task_service.get_task(req.user, req.path_params["task_id"])
    return 200, task.to_response()


async def _update_task(req: Request):
    task = await task_service.update_task(req.user, req.path_params["task_id"], req.json())
    return 200, task.to_response()


async def _delete_task(req: Request):
    return 200, await task_service.delete_task(req.user, req.path_params["task_id"])


async def _complete_task(req: Request):
    task = await task_service.complete_task(req.user, req.path_params["task_id"])
    return 200, task.to_response()


# Literal segments come before the `{task_id}` patterns
ROUTES: list[tuple[re.Pattern, dict[str, RouteFn]]] = [
    (re.compile(r"^/api/tasks/?$"), {"GET": _list_tasks, "POST": _create_task}),
    (re.compile(r"^/api/tasks/stats/summary/?$"), {"GET": _get_stats}),
    (re.compile(r"^/api/tasks/notifications/?$"), {"GET": _get_notifications}),
    (re.compile(r"^/api/tasks/(?P<task_id>[^/]+)/complete/?$"), {"PATCH": _complete_task}),
    (re.compile(r"^/api/tasks/(?P<task_id>[^/]+)/?$"), {"GET": _get_task, "PUT": _update_task, "DELETE": _delete_task}),
]


class MethodNotAllowed(TaskDashboardError):
    status_code = 405
    public_message = "Method not allowed"


def match_route(method: str, path: str) -> tuple[RouteFn, dict[str, str]]:
    """Find the route function for a request, or raise 404/405."""
    for pattern, methods in ROUTES:
        match = pattern.match(path)
        if match is None:
            continue
        route = methods.get(method)
        if route is None:
            raise MethodNotAllowed()
        return route, match.groupdict()
    raise NotFoundError("Route not found")


async def dispatch(
    method: str,
    raw_path: str,
    headers: dict,
    raw_body: Union[bytes, str, None] = b"",
) -> tuple[int, Any]:
    """
    Route, authenticate and run one request.

    Returns (status code, JSON-serialisable body). Errors are mapped by type;
    unexpected exceptions become a generic 500.
    """
    url = urlsplit(raw_path)
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    req = Request(method.upper(), url.path, parse_qs(url.query), headers or {}, raw_body)

    try:
        route, path_params = match_route(req.method, req.path)
        req.path_params = path_params
        req.user = authenticate_request(req.headers)
        return await route(req)
    except InternalError as e:
        _logger.error(f"Internal error on {req.method} {req.path}: {e.message}", exc_info=True)
        return e.status_code, e.to_response()
    except TaskDashboardError as e:
        _logger.info(
            "Request rejected",
            method=req.method,
            path=req.path,
            status_code=e.status_code,
            error_type=type(e).__name__,
        )
        return e.status_code, e.to_response()
    except Exception as e:
        _logger.error(f"Unhandled error on {req.method} {req.path}: {e}", exc_info=True)
        return 500, InternalError().to_response()


def _run(coro):
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for the task API."""

    def _read_body(self) -> Optional[bytes]:
        """Raw body bytes, or None when Content-Length is not a usable number."""
        try:
            content_length = int(self.headers.get('Content-Length', 0) or 0)
        except ValueError:
            return None
        if content_length < 0:
            return None
        return self.rfile.read(content_length) if content_length > 0 else b""

    def _handle(self, method: str) -> None:
        raw_body = self._read_body()
        headers = dict(self.headers.items())
        incoming_id = self.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER)

        with correlation_context(incoming_id) as correlation_id:
            status, body = _run(dispatch(method, self.path, headers, raw_body))
            _logger.info("Request completed", method=method, path=urlsplit(self.path).path, status_code=status)

        payload = json.dumps(body, ensure_ascii=False).encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'application/json; charset=utf-8')
        self.send_header('Content-Length', str(len(payload)))
        self.send_header(LoggingConfig.LOG_CORRELATION_ID_HEADER, correlation_id)
        self.end_headers()
        self.wfile.write(payload)

    def do_GET(self):
        self._handle("GET")

    def do_POST(self):
        self._handle("POST")

    def do_PUT(self):
        self._handle("PUT")

    def do_PATCH(self):
        self._handle("PATCH")

    def do_DELETE(self):
        self._handle("DELETE")

    def log_message(self, format, *args):
        _logger.debug(format % args)
