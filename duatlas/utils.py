from __future__ import annotations

def format_bytes(num: int) -> str:
    if num < 0:
        return str(num)
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    x = float(num)
    for u in units:
        if x < 1024.0 or u == units[-1]:
            return f"{x:.2f} {u}" if u != "B" else f"{int(x)} {u}"
        x /= 1024.0
    return f"{x:.2f} PB"

def clamp(v, lo, hi):
    return lo if v < lo else hi if v > hi else v

def shorten_middle(text: str, limit: int = 140, keep: int = 60) -> str:
    # avoid extremely long labels
    if len(text) <= limit:
        return text
    return text[:keep] + " … " + text[-keep:]
