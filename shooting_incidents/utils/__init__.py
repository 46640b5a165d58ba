from .boroughs import BOROUGHS, normalize_borough

__all__ = [
    "BOROUGHS",
    "normalize_borough",
]
