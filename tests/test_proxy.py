import unittest

import httpx

from personal_site import create_app
from personal_site.proxy import rewrite_cookie_path, rewrite_location

ORIGIN = "http://upstream.internal"


class RewriteHelpersTestCase(unittest.TestCase):
    def test_location_rewrites(self):
        cases = [
            (f"{ORIGIN}/login", "/app/login"),
            (f"{ORIGIN}", "/app/"),
            (f"{ORIGIN}?next=1", "/app/?next=1"),
            ("/login?next=/home", "/app/login?next=/home"),
            ("/app/already", "/app/already"),
            ("https://elsewhere.example/x", "https://elsewhere.example/x"),
            (f"{ORIGIN}.evil.example/x", f"{ORIGIN}.evil.example/x"),
            ("//cdn.example/x", "//cdn.example/x"),
            ("relative/path", "relative/path"),
        ]
        for location, expected in cases:
            with self.subTest(location=location):
                self.assertEqual(rewrite_location(location, ORIGIN, "/app"), expected)

    def test_cookie_path_rewrites(self):
        cases = [
            ("sid=abc; Path=/; HttpOnly", "sid=abc; Path=/app; HttpOnly"),
            ("pref=dark; path=/settings; Secure", "pref=dark; Path=/app/settings; Secure"),
            ("plain=1", "plain=1; Path=/app"),
            ("kept=1; Path=/app/inner", "kept=1; Path=/app/inner"),
        ]
        for cookie, expected in cases:
            with self.subTest(cookie=cookie):
                self.assertEqual(rewrite_cookie_path(cookie, "/app"), expected)


class ProxyPassthroughTestCase(unittest.TestCase):
    def setUp(self):
        self.seen = []
        self.app = create_app(
            {
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": "sqlite://",
                "PROXY_ORIGIN": ORIGIN,
                "PROXY_PREFIX": "/app",
            },
            proxy_transport=httpx.MockTransport(self.upstream),
        )
        self.client = self.app.test_client()

    def upstream(self, request: httpx.Request) -> httpx.Response:
        self.seen.append(request)
        if request.url.path == "/down":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path == "/login":
            return httpx.Response(
                302,
                headers=[
                    ("Location", f"{ORIGIN}/dashboard"),
                    ("Set-Cookie", "sid=abc; Path=/; HttpOnly"),
                    ("Set-Cookie", "pref=dark"),
                ],
            )
        return httpx.Response(
            200,
            headers={"Keep-Alive": "timeout=5"},
            json={"path": request.url.path, "method": request.method},
        )

    def test_request_is_forwarded_with_forwarding_headers(self):
        response = self.client.get(
            "/app/dashboard?tab=1",
            headers={
                "X-Custom": "yes",
                "Connection": "keep-alive, X-Hop",
                "X-Hop": "secret",
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"path": "/dashboard", "method": "GET"})
        self.assertEqual(response.content_type, "application/json")
        self.assertNotIn("Keep-Alive", response.headers)
        self.assertNotIn("X-Frame-Options", response.headers)

        forwarded = self.seen[0]
        self.assertEqual(str(forwarded.url), f"{ORIGIN}/dashboard?tab=1")
        self.assertEqual(forwarded.headers["host"], "upstream.internal")
        self.assertEqual(forwarded.headers["x-custom"], "yes")
        self.assertEqual(forwarded.headers["x-forwarded-prefix"], "/app")
        self.assertEqual(forwarded.headers["x-forwarded-host"], "localhost")
        self.assertEqual(forwarded.headers["x-forwarded-proto"], "http")
        self.assertNotIn("x-hop", forwarded.headers)
        self.assertNotEqual(forwarded.headers.get("connection"), "keep-alive, X-Hop")

    def test_prefix_root_is_forwarded(self):
        self.client.get("/app/")
        self.assertEqual(self.seen[0].url.path, "/")

    def test_post_body_is_forwarded(self):
        response = self.client.post("/app/api/items", data={"title": "hello"})

        self.assertEqual(response.get_json()["method"], "POST")
        self.assertEqual(self.seen[0].content, b"title=hello")
        self.assertEqual(
            self.seen[0].headers["content-type"], "application/x-www-form-urlencoded"
        )

    def test_redirects_and_cookies_stay_under_prefix(self):
        response = self.client.post("/app/login", data={"user": "me"})

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["Location"], "/app/dashboard")
        self.assertEqual(
            response.headers.getlist("Set-Cookie"),
            ["sid=abc; Path=/app; HttpOnly", "pref=dark; Path=/app"],
        )

    def test_upstream_failure_is_bad_gateway(self):
        with self.assertLogs(self.app.logger, level="WARNING"):
            response = self.client.get("/app/down")
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.get_data(as_text=True), "Upstream application is unavailable.")

    def test_site_routes_are_not_proxied(self):
        self.assertEqual(self.client.get("/about").status_code, 200)
        self.assertEqual(self.seen, [])


class ProxyDisabledTestCase(unittest.TestCase):
    def test_prefix_is_not_mounted_without_origin(self):
        app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite://", "PROXY_ORIGIN": None})
        self.assertNotIn("proxy_client", app.extensions)
        self.assertEqual(app.test_client().get("/app/anything").status_code, 404)


if __name__ == "__main__":
    unittest.main()
