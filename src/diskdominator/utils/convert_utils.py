"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

utils/convert_utils.py
Size and duration formatting shared by the CLI, scan options and rule conditions.
"""
import re
from typing import Union

# "500KB", "1.5 g", "2048" (bytes); units are powers of 1024
_SIZE_PATTERN = re.compile(r"^(?P<value>-?\d+(?:\.\d+)?)\s*(?P<unit>[KMGTP]?)B?$")
_UNIT_POWERS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4, "P": 5}
_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


class ConvertUtils:
    @staticmethod
    def bytes_to_human(size_bytes: Union[int, float]) -> str:
        """1536 -> '1.50KB'. Negative input renders as '0B'."""
        if size_bytes < 0:
            return "0B"
        value = float(size_bytes)
        for unit in _SIZE_UNITS:
            if value < 1024:
                return f"{value:.2f}{unit}"
            value /= 1024
        return f"{value:.2f}EB"

    @staticmethod
    def human_to_bytes(size_str: Union[str, int]) -> int:
        """
        Parse a size given by a user or a rules document.

        Accepts plain byte counts ('1000'), long and short units in any case
        ('2048KB', '1.5g', '10 MB') and JSON integers, which are returned as is.
        Raises ValueError for negative sizes, booleans and anything else.
        """
        if isinstance(size_str, bool):
            raise ValueError(f"Invalid size value: {size_str!r}")
        if isinstance(size_str, int):
            if size_str < 0:
                raise ValueError(f"Negative size not allowed: '{size_str}'")
            return size_str

        text = str(size_str).strip().upper()
        match = _SIZE_PATTERN.match(text)
        if not match:
            raise ValueError(
                f"Invalid size format: '{text}'. "
                f"Supported formats: 1.5GB, 2048KB, 1000, 1K, 1M, etc."
            )

        value = float(match.group("value"))
        if value < 0:
            raise ValueError(f"Negative size not allowed: '{text}'")
        return int(value * 1024 ** _UNIT_POWERS[match.group("unit")])

    @staticmethod
    def seconds_to_human(seconds: Union[int, float]) -> str:
        """Format an estimated duration: 45s, 3m 20s, 2h 5m."""
        seconds = max(0, int(seconds))
        minutes, secs = divmod(seconds, 60)
        hours, minutes = divmod(minutes, 60)
        if hours:
            return f"{hours}h {minutes}m"
        if minutes:
            return f"{minutes}m {secs}s"
        return f"{secs}s"
