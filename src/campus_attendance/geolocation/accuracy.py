from __future__ import annotations

import math
from typing import Optional


def format_accuracy(meters: Optional[float]) -> str:
    if meters is None:
        return "未知"
    if meters < 1000:
        return f"{int(math.floor(meters + 0.5))} 公尺"
    return f"{meters / 1000:.1f} 公里"


def accuracy_level(meters: Optional[float]) -> str:
    if meters is None:
        return "未知"
    if meters <= 5:
        return "極高精度"
    if meters <= 10:
        return "高精度"
    if meters <= 20:
        return "中精度"
    return "低精度"
