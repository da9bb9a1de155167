"""Single-value extractors for dumpsys, top and ps output.

Every extractor returns ``None`` when the dump holds no matching line or the
field does not parse. Callers render that as "unknown"; it is never a zero.
"""

from __future__ import annotations


def _first_line(output: str, predicate) -> str | None:
    for line in output.split("\n"):
        if predicate(line):
            return line
    return None


def _to_float(token: str) -> float | None:
    try:
        return float(token)
    except ValueError:
        return None


def parse_battery_level(dump: str) -> int | None:
    """`dumpsys battery` -> charge level in percent."""
    line = _first_line(dump, lambda l: l.strip().startswith("level:"))
    if line is None:
        return None
    tokens = line.split()
    if len(tokens) < 2 or not tokens[1].isdigit():
        return None
    return int(tokens[1])


def parse_meminfo_total_mb(dump: str) -> int | None:
    """`dumpsys meminfo <pkg>` -> total PSS in MB (rounded from kB)."""
    line = _first_line(dump, lambda l: l.strip().startswith("TOTAL"))
    if line is None:
        return None
    for token in line.split()[1:]:
        if token.isdigit():
            return round(int(token) / 1024)
    return None


def find_cpu_token(top_output: str, package: str) -> str | None:
    """`top -b -n 1` -> the raw CPU token (e.g. "12%") on the package's line."""
    line = _first_line(top_output, lambda l: package in l)
    if line is None:
        return None
    for token in line.split():
        if "%" in token:
            return token
    return None


def parse_top_cpu(top_output: str, package: str) -> float | None:
    token = find_cpu_token(top_output, package)
    if token is None:
        return None
    return _to_float(token.replace("%", ""))


def _ps_column(ps_output: str, bundle_id: str, index: int) -> float | None:
    line = _first_line(ps_output, lambda l: bundle_id in l)
    if line is None:
        return None
    tokens = line.split()
    if len(tokens) <= index:
        return None
    return _to_float(tokens[index])


def parse_ps_cpu(ps_output: str, bundle_id: str) -> float | None:
    """`ps aux` -> %CPU of the first process naming the bundle."""
    return _ps_column(ps_output, bundle_id, 2)


def parse_ps_memory_mb(ps_output: str, bundle_id: str) -> int | None:
    """`ps aux` -> %MEM scaled against a nominal 1 GB simulator budget."""
    percent = _ps_column(ps_output, bundle_id, 3)
    if percent is None:
        return None
    return round(percent * 1024 / 100)
