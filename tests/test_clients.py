"""
Unit tests for the bibliographic lookup clients.

HTTP traffic is served by httpx.MockTransport through the client's persistent
AsyncClient, so no request leaves the process.
"""
import unittest

import httpx

from integrity_engine.core.error_handling import ClientConfigurationError, ExternalServiceError
from integrity_engine.services.clients import CrossrefClient, DoiResolverClient, OpenAlexClient
from integrity_engine.services.clients.base_client import best_title_match


def _attach(client, handler):
    """Route the client's requests to handler."""
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


class TestBestTitleMatch(unittest.TestCase):

    def test_identical_titles_ignore_case_and_punctuation(self):
        self.assertEqual(best_title_match("Deep Work: Rules", ["deep work rules"]), 1.0)

    def test_best_candidate_wins(self):
        score = best_title_match("Cognitive load theory", ["Something else", "Cognitive load theories"])
        self.assertGreater(score, 0.85)

    def test_no_candidates(self):
        self.assertEqual(best_title_match("Title", []), 0.0)
        self.assertEqual(best_title_match("!!!", ["Title"]), 0.0)


class TestClientConfiguration(unittest.TestCase):

    def test_endpoint_must_be_http(self):
        with self.assertRaises(ClientConfigurationError):
            DoiResolverClient(endpoint="ftp://doi.org")

    def test_trailing_slash_removed(self):
        client = CrossrefClient(endpoint="https://api.crossref.org/")
        self.assertEqual(client.endpoint, "https://api.crossref.org")
        self.assertIn("https://api.crossref.org", repr(client))


class TestDoiResolverClient(unittest.IsolatedAsyncioTestCase):
    """Test cases for DoiResolverClient."""

    async def test_redirect_means_registered(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(302, headers={"Location": "https://publisher.example/article"})

        client = _attach(DoiResolverClient(endpoint="https://doi.org"), handler)
        try:
            self.assertTrue(await client.resolve("10.1000/xyz123"))
        finally:
            await client.close()
        self.assertEqual(seen, [("HEAD", "/10.1000/xyz123")])

    async def test_not_found_means_unregistered(self):
        client = _attach(DoiResolverClient(endpoint="https://doi.org"), lambda request: httpx.Response(404))
        try:
            self.assertFalse(await client.resolve("10.1000/missing"))
        finally:
            await client.close()

    async def test_unexpected_status_raises(self):
        client = _attach(DoiResolverClient(endpoint="https://doi.org"), lambda request: httpx.Response(403))
        try:
            with self.assertRaises(ExternalServiceError):
                await client.resolve("10.1000/xyz123")
        finally:
            await client.close()

    async def test_health_check_swallows_network_errors(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = _attach(DoiResolverClient(endpoint="https://doi.org"), handler)
        try:
            self.assertFalse(await client.health_check())
        finally:
            await client.close()
        self.assertIsNone(client._client)


class TestCrossrefClient(unittest.IsolatedAsyncioTestCase):
    """Test cases for CrossrefClient."""

    async def test_verify_by_doi(self):
        def handler(request):
            if request.url.path == "/works/10.1207/s15516709cog1202_4":
                return httpx.Response(200, json={"message": {"DOI": "10.1207/s15516709cog1202_4"}})
            return httpx.Response(404)

        client = _attach(CrossrefClient(endpoint="https://api.crossref.org"), handler)
        try:
            self.assertTrue(await client.verify({"doi": "https://doi.org/10.1207/s15516709cog1202_4"}))
            self.assertFalse(await client.verify({"doi": "10.1207/unknown"}))
        finally:
            await client.close()

    async def test_verify_by_title(self):
        def handler(request):
            self.assertEqual(request.url.params["query.bibliographic"], "Cognitive load during problem solving")
            return httpx.Response(200, json={"message": {"items": [
                {"title": ["Cognitive Load During Problem Solving: Effects on Learning"]},
                {"title": ["Cognitive load during problem solving"]},
            ]}})

        client = _attach(CrossrefClient(endpoint="https://api.crossref.org"), handler)
        try:
            self.assertTrue(await client.verify({"title": "Cognitive load during problem solving"}))
        finally:
            await client.close()

    async def test_title_below_threshold(self):
        payload = {"message": {"items": [{"title": ["An unrelated monograph on geology"]}]}}
        client = _attach(
            CrossrefClient(endpoint="https://api.crossref.org"),
            lambda request: httpx.Response(200, json=payload),
        )
        try:
            self.assertFalse(await client.verify({"title": "Cognitive load during problem solving"}))
        finally:
            await client.close()

    async def test_missing_title_and_doi(self):
        client = CrossrefClient(endpoint="https://api.crossref.org")
        self.assertFalse(await client.verify({"authors": ["Doe, J."]}))

    async def test_malformed_payload(self):
        client = _attach(
            CrossrefClient(endpoint="https://api.crossref.org"),
            lambda request: httpx.Response(200, json={"unexpected": True}),
        )
        try:
            with self.assertRaises(ExternalServiceError):
                await client.verify({"title": "Some title"})
        finally:
            await client.close()

    async def test_client_error_status(self):
        client = _attach(CrossrefClient(endpoint="https://api.crossref.org"), lambda request: httpx.Response(400))
        try:
            with self.assertRaises(ExternalServiceError):
                await client.verify({"title": "Some title"})
        finally:
            await client.close()


class TestOpenAlexClient(unittest.IsolatedAsyncioTestCase):
    """Test cases for OpenAlexClient."""

    async def test_verify_by_doi_filter(self):
        def handler(request):
            self.assertEqual(request.url.params["filter"], "doi:10.1000/abc")
            return httpx.Response(200, json={"results": [{"id": "W1"}]})

        client = _attach(OpenAlexClient(endpoint="https://api.openalex.org"), handler)
        try:
            self.assertTrue(await client.verify({"doi": "10.1000/ABC"}))
        finally:
            await client.close()

    async def test_no_results(self):
        client = _attach(
            OpenAlexClient(endpoint="https://api.openalex.org"),
            lambda request: httpx.Response(200, json={"results": []}),
        )
        try:
            self.assertFalse(await client.verify({"doi": "10.1000/abc"}))
            self.assertFalse(await client.verify({"title": "Anything"}))
        finally:
            await client.close()

    async def test_verify_by_title(self):
        payload = {"results": [{"display_name": "Working memory and instructional design"}]}
        client = _attach(
            OpenAlexClient(endpoint="https://api.openalex.org"),
            lambda request: httpx.Response(200, json=payload),
        )
        try:
            self.assertTrue(await client.verify({"title": "Working Memory and Instructional Design."}))
        finally:
            await client.close()

    async def test_health_check(self):
        client = _attach(OpenAlexClient(endpoint="https://api.openalex.org"), lambda request: httpx.Response(200, json={}))
        try:
            self.assertTrue(await client.health_check())
        finally:
            await client.close()


if __name__ == '__main__':
    unittest.main()
