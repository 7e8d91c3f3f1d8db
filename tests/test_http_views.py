# ruff: noqa: ANN201, ANN206, D100, D101, D102, E501, INP001, PLC0415, PT009

import unittest
from datetime import date
from unittest import mock

import test_support


class TestStaticPages(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        _FastAPI, cls.TestClient = test_support.require_fastapi()

    def setUp(self):
        self.client = test_support.make_test_client()

    def test_static_pages_render(self):
        pages = {
            "/": "home.html.j2",
            "/tours/hood-river": "tours/hood-river.html.j2",
            "/tours/request-group-rate": "tours/request-group-rate.html.j2",
            "/thank-you": "thank-you.html.j2",
            "/newsletter": "newsletter.html.j2",
        }
        for path, template in pages.items():
            with self.subTest(path=path):
                response = self.client.get(path)
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.template.name, template)
                self.assertTrue(
                    response.headers["content-type"].startswith("text/html"),
                )

    def test_about_has_fortune_and_test_script(self):
        from markupsafe import escape

        from meadowlark.fortune import FORTUNES

        response = self.client.get("/about")
        self.assertEqual(response.status_code, 200)
        fortune = response.context["fortune"]
        self.assertIn(fortune, FORTUNES)
        self.assertTrue(fortune)
        self.assertIn(str(escape(fortune)), response.text)
        self.assertIn("/qa/tests-about.js", response.text)

    def test_home_shows_weather(self):
        response = self.client.get("/")
        self.assertEqual(len(response.context["weather"]), 3)
        for name in ("Portland", "Bend", "Manzanita"):
            self.assertIn(name, response.text)

    def test_weather_provider_is_injectable(self):
        from meadowlark.weather import StaticWeatherProvider, WeatherLocation

        provider = StaticWeatherProvider(
            (
                WeatherLocation(
                    name="Astoria",
                    forecast_url="http://www.wunderground.com/US/OR/Astoria.html",
                    icon_url="http://icons-ak.wxug.com/i/c/k/rain.gif",
                    condition="Rain",
                    temperature="50.0 F (10.0 C)",
                ),
            ),
        )
        client = test_support.make_test_client(weather_provider=provider)
        response = client.get("/")
        self.assertIn("Astoria", response.text)
        self.assertNotIn("Manzanita", response.text)

    def test_vacation_photo_defaults_to_current_month(self):
        today = date.today()
        response = self.client.get("/contest/vacation-photo/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["year"], today.year)
        self.assertEqual(response.context["month"], today.month)
        self.assertIn(
            f'action="/contest/vacation-photo/{today.year}/{today.month}"',
            response.text,
        )

    def test_newsletter_form_carries_session_csrf_token(self):
        response = self.client.get("/newsletter")
        token = test_support.extract_csrf_token(response.text)
        self.assertIn(f'name="_csrf" value="{token}"', response.text)

    def test_head_returns_empty_body(self):
        response = self.client.head("/about")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"")
        self.assertTrue(response.headers["content-type"].startswith("text/html"))

    def test_qa_scripts_are_served(self):
        response = self.client.get("/qa/tests-about.js")
        self.assertEqual(response.status_code, 200)
        self.assertIn("About", response.text)


class TestNotFound(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        test_support.require_fastapi()

    def setUp(self):
        self.client = test_support.make_test_client()

    def test_unmatched_paths_render_notfound(self):
        for method, path in (
            ("GET", "/this-route-does-not-exist"),
            ("GET", "/tours/nowhere"),
            ("POST", "/nothing/here"),
            ("GET", "/qa/missing-tests.js"),
        ):
            with self.subTest(method=method, path=path):
                response = self.client.request(method, path)
                self.assertEqual(response.status_code, 404)
                self.assertTrue(
                    response.headers["content-type"].startswith("text/html"),
                )
                self.assertIn("404 - Not Found", response.text)


class TestForms(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        test_support.require_fastapi()

    def setUp(self):
        self.client = test_support.make_test_client()

    def test_contest_entry_redirects_to_thank_you(self):
        with self.assertLogs("meadowlark.views", "INFO") as logs:
            response = self.client.post(
                "/contest/vacation-photo/2026/10",
                data={"name": "Ada", "email": "ada@example.com"},
                files={"photo": ("beach.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
                follow_redirects=False,
            )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/thank-you")
        output = "\n".join(logs.output)
        self.assertIn("2026/10", output)
        self.assertIn("ada@example.com", output)
        self.assertIn("beach.jpg", output)
        self.assertIn("image/jpeg", output)

    def test_contest_entry_accepts_any_contents(self):
        submissions = (
            {"data": {}, "files": {"photo": ("empty.bin", b"", "application/octet-stream")}},
            {"data": {"name": ""}, "files": {"a": ("a.txt", b"a", "text/plain"), "b": ("b.txt", b"b", "text/plain")}},
        )
        for submission in submissions:
            with self.subTest(submission=submission):
                response = self.client.post(
                    "/contest/vacation-photo/not-a-year/13",
                    follow_redirects=False,
                    **submission,
                )
                self.assertEqual(response.status_code, 303)
                self.assertEqual(response.headers["location"], "/thank-you")

    def test_process_logs_fields_and_redirects(self):
        page = self.client.get("/newsletter")
        token = test_support.extract_csrf_token(page.text)
        with self.assertLogs("meadowlark.views", "INFO") as logs:
            response = self.client.post(
                "/process?form=newsletter",
                data={"_csrf": token, "name": "Ada", "email": "ada@example.com"},
                follow_redirects=False,
            )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/thank-you")
        output = "\n".join(logs.output)
        self.assertIn("Form (from querystring): newsletter", output)
        self.assertIn("matches session: True", output)
        self.assertIn("Name (from visible form field): Ada", output)


class TestFlashReadOnce(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        test_support.require_fastapi()

    def test_flash_is_shown_on_exactly_the_next_request(self):
        from meadowlark.flash import FlashKind

        client = test_support.make_test_client()
        response = client.post(
            "/process?form=newsletter",
            data={"name": "Ada", "email": "ada@example.com"},
            follow_redirects=False,
        )
        self.assertEqual(response.status_code, 303)

        first = client.get("/thank-you")
        flash = first.context["flash"]
        self.assertIsNotNone(flash)
        self.assertIs(flash.kind, FlashKind.SUCCESS)
        self.assertEqual(flash.title, "Thank you!")
        self.assertIn("You have successfully submitted data", first.text)
        self.assertIn("alert-success", first.text)

        second = client.get("/thank-you")
        self.assertIsNone(second.context["flash"])
        self.assertNotIn("You have successfully submitted data", second.text)

    def test_flash_consumed_by_any_next_page(self):
        client = test_support.make_test_client()
        client.post("/process", data={"name": "Ada"}, follow_redirects=False)

        about = client.get("/about")
        self.assertIsNotNone(about.context["flash"])
        home = client.get("/")
        self.assertIsNone(home.context["flash"])

    def test_flash_consumed_by_failed_request_is_not_replayed(self):
        from meadowlark.http.cookie_session import SESSION_COOKIE_NAME

        client = test_support.make_test_client()
        client.post("/process", data={"name": "Ada"}, follow_redirects=False)

        with self.assertLogs("meadowlark.http.fault_barrier", "ERROR"):
            failed = client.get("/fail")
        self.assertEqual(failed.status_code, 500)
        self.assertIsNotNone(failed.context["flash"])
        self.assertIn(
            f"{SESSION_COOKIE_NAME}=",
            failed.headers.get("set-cookie", ""),
        )

        about = client.get("/about")
        self.assertIsNone(about.context["flash"])
        self.assertNotIn("You have successfully submitted data", about.text)

    def test_flash_consumed_by_plain_text_fallback_is_not_replayed(self):
        async def broken_renderer(request, exc):
            raise RuntimeError("template exploded")

        # The middleware stack is built on the first request.
        with mock.patch(
            "meadowlark.http.fault_barrier.render_server_error_response",
            broken_renderer,
        ):
            client = test_support.make_test_client()
            client.post("/process", data={"name": "Ada"}, follow_redirects=False)

        with self.assertLogs("meadowlark.http.fault_barrier", "ERROR"):
            failed = client.get("/fail")
        self.assertEqual(failed.text, "Server error.")

        about = client.get("/about")
        self.assertIsNone(about.context["flash"])

    def test_flash_follows_redirect(self):
        client = test_support.make_test_client()
        response = client.post("/process", data={"name": "Ada"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.template.name, "thank-you.html.j2")
        self.assertIn("You have successfully submitted data", response.text)


class TestShowTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        test_support.require_fastapi()

    def test_query_flag_enables_harness_in_development(self):
        client = test_support.make_test_client()

        response = client.get("/about?test=1")
        self.assertTrue(response.context["show_tests"])
        self.assertIn('<script src="/qa/global-tests.js"></script>', response.text)
        self.assertIn('<script src="/qa/tests-about.js"></script>', response.text)

        response = client.get("/about")
        self.assertFalse(response.context["show_tests"])
        self.assertNotIn("/qa/global-tests.js", response.text)

        response = client.get("/about?test=0")
        self.assertFalse(response.context["show_tests"])

    def test_production_ignores_query_flag(self):
        from meadowlark.http.settings import AppSettings, RunMode

        client = test_support.make_test_client(
            settings=AppSettings(mode=RunMode.PRODUCTION),
        )
        response = client.get("/about?test=1")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.context["show_tests"])
        self.assertNotIn("/qa/global-tests.js", response.text)


if __name__ == "__main__":
    unittest.main()
