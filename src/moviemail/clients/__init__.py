from .base import CatalogSource
from .tmdb import TMDB_API_BASE_URL, TmdbClient

__all__ = ["CatalogSource", "TMDB_API_BASE_URL", "TmdbClient"]
