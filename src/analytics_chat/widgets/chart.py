"""Terminal rendering for chart replies."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rich.table import Table as RichTable
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Label, Sparkline, Static

from ..models import Chart, ChartKind

CATEGORY_KINDS = frozenset({ChartKind.BAR, ChartKind.LINE, ChartKind.RADAR})
SHARE_KINDS = frozenset({ChartKind.PIE, ChartKind.DOUGHNUT, ChartKind.POLAR_AREA})
POINT_KINDS = frozenset({ChartKind.BUBBLE, ChartKind.SCATTER})


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value))
    except (TypeError, ValueError):
        return None


def _format_number(value: float | None) -> str:
    if value is None:
        return "—"
    return f"{value:g}"


def _datasets(chart: Chart) -> list[Mapping[str, Any]]:
    raw = chart.data.get("datasets")
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, Mapping)]


def _labels(chart: Chart) -> list[str]:
    raw = chart.data.get("labels")
    if not isinstance(raw, list):
        return []
    return [str(label) for label in raw]


def chart_title(chart: Chart) -> str:
    """Return the chart title when the options ask for one to be shown."""
    plugins = chart.merged_options().get("plugins")
    title = plugins.get("title") if isinstance(plugins, Mapping) else None
    if isinstance(title, Mapping) and title.get("display"):
        text = title.get("text")
        if isinstance(text, list):
            return " ".join(str(part) for part in text)
        if text:
            return str(text)
    return ""


def dataset_series(dataset: Mapping[str, Any]) -> list[float]:
    """Return the numeric values of a category dataset for sparklines."""
    raw = dataset.get("data")
    if not isinstance(raw, list):
        return []
    values = [_number(item) for item in raw]
    return [value for value in values if value is not None]


def chart_rows(chart: Chart) -> tuple[list[str], list[list[str]]]:
    """Flatten a chart config into table headers and rows."""
    datasets = _datasets(chart)

    if chart.kind in POINT_KINDS:
        headers = ["series", "x", "y"]
        if chart.kind is ChartKind.BUBBLE:
            headers.append("r")
        rows: list[list[str]] = []
        for index, dataset in enumerate(datasets):
            name = str(dataset.get("label") or f"Series {index + 1}")
            points = dataset.get("data")
            for point in points if isinstance(points, list) else []:
                if not isinstance(point, Mapping):
                    continue
                row = [name] + [
                    _format_number(_number(point.get(axis))) for axis in headers[1:]
                ]
                rows.append(row)
        return headers, rows

    labels = _labels(chart)
    if chart.kind in SHARE_KINDS:
        values = dataset_series(datasets[0]) if datasets else []
        total = sum(values)
        rows = []
        for index, value in enumerate(values):
            label = labels[index] if index < len(labels) else f"#{index + 1}"
            share = f"{value / total * 100:.1f}%" if total else "—"
            rows.append([label, _format_number(value), share])
        return ["label", "value", "share"], rows

    headers = ["label"] + [
        str(dataset.get("label") or f"Series {index + 1}")
        for index, dataset in enumerate(datasets)
    ]
    columns = [dataset.get("data") for dataset in datasets]
    width = max([len(labels)] + [len(c) for c in columns if isinstance(c, list)])
    rows = []
    for position in range(width):
        label = labels[position] if position < len(labels) else f"#{position + 1}"
        row = [label]
        for column in columns:
            value = None
            if isinstance(column, list) and position < len(column):
                value = column[position]
            row.append(_format_number(_number(value)))
        rows.append(row)
    return headers, rows


class ChartView(Vertical):
    """Draw a chart config with sparklines and a value table."""

    DEFAULT_CSS = """
    ChartView {
        height: auto;
        margin-top: 1;
    }
    ChartView > .chart-title {
        text-style: bold;
    }
    ChartView > Sparkline {
        height: 3;
        margin-bottom: 1;
    }
    """

    def __init__(self, chart: Chart, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.chart = chart
        self.add_class(f"chart-{chart.kind.value}")

    def compose(self) -> ComposeResult:
        title = chart_title(self.chart)
        if title:
            yield Label(title, classes="chart-title")
        if self.chart.kind in CATEGORY_KINDS:
            for index, dataset in enumerate(_datasets(self.chart)):
                series = dataset_series(dataset)
                if not series:
                    continue
                name = str(dataset.get("label") or f"Series {index + 1}")
                yield Label(f"{name} ({self.chart.kind.value})", classes="chart-series")
                yield Sparkline(series, summary_function=max)

        headers, rows = chart_rows(self.chart)
        table = RichTable(*headers, expand=False)
        for row in rows:
            table.add_row(*row)
        yield Static(table, classes="chart-values")
