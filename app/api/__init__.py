from .routes_error import make_error_router

__all__ = ["make_error_router"]
