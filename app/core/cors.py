from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response


class RelayCORSMiddleware(CORSMiddleware):
    """
    Pre-flight всегда отвечает 200. Для origin вне списка разрешённых
    в Access-Control-Allow-Origin уходит первый разрешённый origin,
    и браузер сам блокирует запрос.
    """

    def __init__(self, app, allow_origins=(), **kwargs):
        super().__init__(app, allow_origins=allow_origins, **kwargs)
        self.fallback_origin = allow_origins[0] if allow_origins else None

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code == 200:
            return response

        headers = dict(self.preflight_headers)
        if self.fallback_origin:
            headers["Access-Control-Allow-Origin"] = self.fallback_origin
        return Response(status_code=200, headers=headers)
