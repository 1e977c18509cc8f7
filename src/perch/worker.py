"""The edge service: greeting, form echo, version report, and echo relay.

Serve it with::

    perch run perch.worker:app

or build a configured instance with ``create_app(config, env)``.
"""

from perch.app import App
from perch.config import AppConfig
from perch.env import Env
from perch.errors import BadRequest, UnprocessableEntity
from perch.http.forms import FormDecodeError, FormField, UploadFile
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.access_log import RequestLogMiddleware
from perch.realtime.relay import EchoRelay
from perch.realtime.websocket import WebSocketUpgrade

FILE_FIELD_ERROR = "`field` param in form shouldn't be a File"


def create_app(config: AppConfig | None = None, env: Env | None = None) -> App:
    """Build the edge app with its four routes and request logging."""
    app = App(config or AppConfig.from_env(), env=env)
    app.add_middleware(RequestLogMiddleware())

    @app.get("/")
    def index(request: Request, params: dict[str, str]) -> str:
        return app.config.greeting

    @app.post("/form/:field")
    async def form_field(request: Request, params: dict[str, str]) -> Response:
        name = params.get("field")
        if not name:
            raise BadRequest()
        try:
            form = await request.form()
        except FormDecodeError as exc:
            raise BadRequest() from exc

        match form.entry(name):
            case FormField(value=value):
                return Response.from_json({name: value})
            case UploadFile():
                raise UnprocessableEntity(FILE_FIELD_ERROR)
            case _:
                raise BadRequest()

    @app.get("/worker-version")
    def worker_version(request: Request, params: dict[str, str]) -> str:
        return app.env.var(app.config.version_var)

    @app.get("/websocket")
    def websocket(request: Request, params: dict[str, str]) -> WebSocketUpgrade:
        return WebSocketUpgrade(EchoRelay(app.config.greeting))

    return app


app = create_app()
