from __future__ import annotations

import sys
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Protocol, Tuple, Union

from starlette.requests import Request


LOWEST_PRECEDENCE = sys.maxsize


@dataclass(frozen=True)
class ResolvedView:
    """A view chosen for an error: a name, its model and optionally a static page."""

    view: str
    model: Mapping[str, Any] = field(default_factory=dict)
    status: Optional[HTTPStatus] = None
    source: Optional[Path] = None


class ErrorViewResolver(Protocol):
    def resolve_error_view(
        self, request: Request, status: HTTPStatus, model: Mapping[str, Any]
    ) -> Optional[ResolvedView]: ...


def get_order(resolver: Any) -> int:
    order = getattr(resolver, "order", None)
    if order is None:
        return LOWEST_PRECEDENCE
    return int(order)


class OrderedResolver:
    """Carries an explicit priority alongside a resolver that has none."""

    def __init__(self, resolver: ErrorViewResolver, order: int) -> None:
        self.resolver = resolver
        self.order = order

    def resolve_error_view(
        self, request: Request, status: HTTPStatus, model: Mapping[str, Any]
    ) -> Optional[ResolvedView]:
        return self.resolver.resolve_error_view(request, status, model)

    def __repr__(self) -> str:
        return f"OrderedResolver({self.resolver!r}, order={self.order})"


def with_order(resolver: ErrorViewResolver, order: int) -> OrderedResolver:
    return OrderedResolver(resolver, order)


class ResolverChain:
    """Immutable, precedence-sorted sequence of error view resolvers.

    Sorting happens once, here. ``sorted`` is stable, so resolvers declaring
    the same order keep their registration order; resolvers without an order
    go last.
    """

    __slots__ = ("_resolvers",)

    def __init__(self, resolvers: Tuple[ErrorViewResolver, ...] = ()) -> None:
        self._resolvers = tuple(resolvers)

    @classmethod
    def build(cls, resolvers: Optional[Iterable[ErrorViewResolver]] = None) -> "ResolverChain":
        if resolvers is None:
            return cls()
        return cls(tuple(sorted(list(resolvers), key=get_order)))

    @property
    def resolvers(self) -> Tuple[ErrorViewResolver, ...]:
        return self._resolvers

    def __iter__(self) -> Iterator[ErrorViewResolver]:
        return iter(self._resolvers)

    def __len__(self) -> int:
        return len(self._resolvers)

    def __repr__(self) -> str:
        return f"ResolverChain({list(self._resolvers)!r})"


def _series_key(status: HTTPStatus) -> str:
    return f"{int(status) // 100}xx"


class StaticErrorPageResolver:
    """Serves ``<directory>/404.html``, falling back to ``<directory>/4xx.html``."""

    def __init__(self, directory: Union[str, Path], order: Optional[int] = None) -> None:
        self.directory = Path(directory)
        self.order = order

    def resolve_error_view(
        self, request: Request, status: HTTPStatus, model: Mapping[str, Any]
    ) -> Optional[ResolvedView]:
        for name in (str(int(status)), _series_key(status)):
            page = self.directory / f"{name}.html"
            if page.is_file():
                return ResolvedView(view=f"error/{name}", model=model, source=page)
        return None

    def __repr__(self) -> str:
        return f"StaticErrorPageResolver({str(self.directory)!r}, order={self.order})"


class MappingErrorViewResolver:
    """Maps an exact status ("404") or a series ("4xx") to a view name."""

    def __init__(self, views: Mapping[Union[str, int], str], order: Optional[int] = None) -> None:
        self.views = {str(k).strip().lower(): v for k, v in views.items()}
        self.order = order

    def resolve_error_view(
        self, request: Request, status: HTTPStatus, model: Mapping[str, Any]
    ) -> Optional[ResolvedView]:
        view = self.views.get(str(int(status))) or self.views.get(_series_key(status))
        if view is None:
            return None
        return ResolvedView(view=view, model=model)

    def __repr__(self) -> str:
        return f"MappingErrorViewResolver({self.views!r}, order={self.order})"
