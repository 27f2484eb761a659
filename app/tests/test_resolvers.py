import tempfile
import unittest
from http import HTTPStatus
from pathlib import Path

from app.web.resolvers import (
    LOWEST_PRECEDENCE,
    MappingErrorViewResolver,
    OrderedResolver,
    ResolvedView,
    ResolverChain,
    StaticErrorPageResolver,
    get_order,
    with_order,
)


class Named:
    def __init__(self, name, order=None):
        self.name = name
        if order is not None:
            self.order = order

    def resolve_error_view(self, request, status, model):
        return None

    def __repr__(self):
        return self.name


class TestResolverChain(unittest.TestCase):
    def test_none_builds_empty_chain(self):
        chain = ResolverChain.build(None)
        self.assertEqual(len(chain), 0)
        self.assertEqual(chain.resolvers, ())

    def test_sorted_by_ascending_order(self):
        r1, r2, r3 = Named("r1", 10), Named("r2", 5), Named("r3", 1)
        chain = ResolverChain.build([r1, r2, r3])
        self.assertEqual(list(chain), [r3, r2, r1])

    def test_equal_orders_keep_input_order(self):
        a, b, c, d = Named("a", 3), Named("b", 3), Named("c", 1), Named("d", 3)
        chain = ResolverChain.build([a, b, c, d])
        self.assertEqual(list(chain), [c, a, b, d])

    def test_unordered_resolvers_go_last_in_input_order(self):
        x, y, z = Named("x"), Named("y", 100), Named("z")
        chain = ResolverChain.build([x, y, z])
        self.assertEqual(list(chain), [y, x, z])
        self.assertEqual(get_order(x), LOWEST_PRECEDENCE)

    def test_explicit_none_order_counts_as_unordered(self):
        r = StaticErrorPageResolver("/nonexistent", order=None)
        self.assertEqual(get_order(r), LOWEST_PRECEDENCE)

    def test_input_mutation_does_not_leak(self):
        first = Named("first", 1)
        source = [first]
        chain = ResolverChain.build(source)
        source.append(Named("late", 0))
        source.clear()
        self.assertEqual(list(chain), [first])

    def test_accepts_any_iterable(self):
        chain = ResolverChain.build(r for r in (Named("b", 2), Named("a", 1)))
        self.assertEqual([r.name for r in chain], ["a", "b"])

    def test_with_order_wraps_resolver(self):
        plain = MappingErrorViewResolver({"404": "not-found"})
        wrapped = with_order(plain, -5)
        self.assertIsInstance(wrapped, OrderedResolver)
        self.assertEqual(get_order(wrapped), -5)

        chain = ResolverChain.build([Named("other", 0), wrapped])
        self.assertIs(chain.resolvers[0], wrapped)
        view = wrapped.resolve_error_view(None, HTTPStatus.NOT_FOUND, {"status": 404})
        self.assertEqual(view, ResolvedView("not-found", {"status": 404}))


class TestMappingErrorViewResolver(unittest.TestCase):
    def test_exact_code_beats_series(self):
        resolver = MappingErrorViewResolver({"4xx": "client-error", 404: "not-found"})
        self.assertEqual(resolver.resolve_error_view(None, HTTPStatus.NOT_FOUND, {}).view, "not-found")
        self.assertEqual(resolver.resolve_error_view(None, HTTPStatus.FORBIDDEN, {}).view, "client-error")

    def test_series_key_is_case_insensitive(self):
        resolver = MappingErrorViewResolver({"5XX": "oops"})
        self.assertEqual(resolver.resolve_error_view(None, HTTPStatus.BAD_GATEWAY, {}).view, "oops")

    def test_declines_when_nothing_matches(self):
        resolver = MappingErrorViewResolver({"404": "not-found"})
        self.assertIsNone(resolver.resolve_error_view(None, HTTPStatus.INTERNAL_SERVER_ERROR, {}))

    def test_model_is_passed_through(self):
        model = {"status": 404, "path": "/x"}
        view = MappingErrorViewResolver({"404": "not-found"}).resolve_error_view(None, HTTPStatus.NOT_FOUND, model)
        self.assertEqual(view.model, model)
        self.assertIsNone(view.source)


class TestStaticErrorPageResolver(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        (self.dir / "404.html").write_text("<h1>missing</h1>", encoding="utf-8")
        (self.dir / "4xx.html").write_text("<h1>client</h1>", encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def test_exact_page(self):
        view = StaticErrorPageResolver(self.dir).resolve_error_view(None, HTTPStatus.NOT_FOUND, {})
        self.assertEqual(view.view, "error/404")
        self.assertEqual(view.source, self.dir / "404.html")

    def test_series_page(self):
        view = StaticErrorPageResolver(self.dir).resolve_error_view(None, HTTPStatus.CONFLICT, {})
        self.assertEqual(view.view, "error/4xx")
        self.assertEqual(view.source, self.dir / "4xx.html")

    def test_declines_without_page(self):
        self.assertIsNone(
            StaticErrorPageResolver(self.dir).resolve_error_view(None, HTTPStatus.SERVICE_UNAVAILABLE, {})
        )

    def test_missing_directory_declines(self):
        resolver = StaticErrorPageResolver(self.dir / "nope")
        self.assertIsNone(resolver.resolve_error_view(None, HTTPStatus.NOT_FOUND, {}))
