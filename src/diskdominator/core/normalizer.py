"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/normalizer.py
Fuzzy filename normalization used by the name-based detection methods.
"""

import re
from functools import lru_cache

from diskdominator.utils.path_utils import PathUtils

_PATTERN_BRACKETS = re.compile(r'\s*[(\[][^)\]]*[)\]]\s*')
_PATTERN_COPY_MARKERS = re.compile(
    r'[_\-\s]?(copy|copia|kopie|new|final|old|backup)[_\-\s]?\d*\s*$', re.IGNORECASE)
_PATTERN_TRAILING_NUMBERS = re.compile(r'[_\-\s]\d{1,3}\s*$')
_PATTERN_NOISE = re.compile(r'[_\s.\-]')


@lru_cache(maxsize=8192)
def normalize_filename(filename: str) -> str:
    """
    Reduce a file name to the key used for name-based grouping.

    - lower-cased
    - bracketed suffixes dropped: "(1)", "[copy]"
    - trailing copy markers dropped: "_copy", "Copy2", "-backup_1"
    - 1-3 trailing digits after a separator dropped ("_12" but not "_2024")
    - separators and dots inside the stem removed
    The extension is kept as-is (lower-cased).

    Examples:
        "DSC_0001.JPG"        -> "dsc0001.jpg"
        "Report (1).pdf"      -> "report.pdf"
        "holiday - Copy.mp4"  -> "holiday.mp4"
        "Report_2024.pdf"     -> "report2024.pdf"
    """
    if not filename:
        return ""

    name, ext = PathUtils.split_ext(filename.lower())

    name = _PATTERN_BRACKETS.sub('', name)
    name = _PATTERN_COPY_MARKERS.sub('', name)
    name = _PATTERN_TRAILING_NUMBERS.sub('', name)
    name = _PATTERN_NOISE.sub('', name)

    # A name made only of markers ("copy.txt") keeps its original stem
    if not name:
        name = _PATTERN_NOISE.sub('', PathUtils.split_ext(filename.lower())[0])

    return name + ext
