"""Reverse proxy passthrough for everything under ``PROXY_PREFIX``.

Requests are replayed against ``PROXY_ORIGIN`` and the answers are rewritten
so redirects and cookies stay under the prefix on this site.
"""

import httpx
from flask import Blueprint, Response, current_app, request
from werkzeug.datastructures import Headers

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}
# httpx decodes the body, so length and encoding no longer describe it.
STRIPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding", "content-length"}
STRIPPED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {"host", "content-length"}
PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _connection_tokens(value: str | None) -> set[str]:
    return {token.strip().lower() for token in (value or "").split(",") if token.strip()}


def rewrite_location(location: str, origin: str, prefix: str) -> str:
    if location.startswith(origin):
        remainder = location[len(origin) :]
        if remainder and remainder[0] not in "/?#":
            return location
        location = remainder if remainder.startswith("/") else "/" + remainder
    if location.startswith("/") and not location.startswith("//"):
        if location == prefix or location.startswith(prefix + "/"):
            return location
        return prefix + location
    return location


def rewrite_cookie_path(cookie: str, prefix: str) -> str:
    parts = [part.strip() for part in cookie.split(";")]
    rewritten = [parts[0]]
    found_path = False
    for attribute in parts[1:]:
        if not attribute:
            continue
        key, _, value = attribute.partition("=")
        if key.strip().lower() == "path":
            found_path = True
            value = value.strip() or "/"
            if value != prefix and not value.startswith(prefix + "/"):
                value = prefix + value if value.startswith("/") and value != "/" else prefix
            attribute = f"Path={value}"
        rewritten.append(attribute)
    if not found_path:
        rewritten.append(f"Path={prefix}")
    return "; ".join(rewritten)


def _forward_headers(prefix: str) -> dict:
    skipped = STRIPPED_REQUEST_HEADERS | _connection_tokens(request.headers.get("Connection"))
    headers = {
        name: value for name, value in request.headers.items() if name.lower() not in skipped
    }
    forwarded_for = request.headers.get("X-Forwarded-For")
    client_ip = request.remote_addr or ""
    headers["X-Forwarded-For"] = f"{forwarded_for}, {client_ip}" if forwarded_for else client_ip
    headers["X-Forwarded-Proto"] = request.headers.get("X-Forwarded-Proto", request.scheme)
    headers["X-Forwarded-Host"] = request.host
    headers["X-Forwarded-Prefix"] = prefix
    return headers


def _build_response(upstream: httpx.Response, origin: str, prefix: str) -> Response:
    skipped = STRIPPED_RESPONSE_HEADERS | _connection_tokens(upstream.headers.get("Connection"))
    headers = Headers()
    for name, value in upstream.headers.multi_items():
        lowered = name.lower()
        if lowered in skipped:
            continue
        if lowered == "location":
            value = rewrite_location(value, origin, prefix)
        elif lowered == "set-cookie":
            value = rewrite_cookie_path(value, prefix)
        headers.add(name, value)
    return Response(upstream.content, status=upstream.status_code, headers=headers)


def create_proxy_blueprint(prefix: str) -> Blueprint:
    bp = Blueprint("proxy", __name__, url_prefix=prefix)

    @bp.route("", defaults={"path": ""}, methods=PROXY_METHODS)
    @bp.route("/", defaults={"path": ""}, methods=PROXY_METHODS)
    @bp.route("/<path:path>", methods=PROXY_METHODS)
    def passthrough(path):
        origin = current_app.config["PROXY_ORIGIN"]
        client = current_app.extensions["proxy_client"]
        url = f"{origin}/{path}"
        query = request.query_string.decode("latin-1")
        if query:
            url = f"{url}?{query}"

        try:
            upstream = client.request(
                request.method,
                url,
                headers=_forward_headers(prefix),
                content=request.get_data(cache=False),
            )
        except httpx.HTTPError as exc:
            current_app.logger.warning("Proxy request to %s failed: %s", url, exc)
            return "Upstream application is unavailable.", 502, {
                "Content-Type": "text/plain; charset=utf-8"
            }
        return _build_response(upstream, origin, prefix)

    return bp


def init_app(app, transport: httpx.BaseTransport | None = None):
    origin = app.config.get("PROXY_ORIGIN")
    if not origin:
        app.logger.info("PROXY_ORIGIN not set; proxy passthrough disabled")
        return

    client = httpx.Client(
        transport=transport,
        follow_redirects=False,
        timeout=app.config["PROXY_TIMEOUT_SECONDS"],
    )
    app.extensions["proxy_client"] = client
    app.register_blueprint(create_proxy_blueprint(app.config["PROXY_PREFIX"]))
