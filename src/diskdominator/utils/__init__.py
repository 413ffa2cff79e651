from .convert_utils import ConvertUtils
from .path_utils import PathUtils

__all__ = ["ConvertUtils", "PathUtils"]
