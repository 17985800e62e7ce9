"""Speed comparison chart generation."""

import io

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server
import matplotlib.pyplot as plt

from route_speed.models import ComparisonPoint

BASELINE_COLOR = '#3b82f6'
TRAFFIC_COLOR = '#f97316'


def _series_values(series: list[ComparisonPoint], attr: str) -> tuple[list[float], list[float]]:
    """Distances (km) and speeds for the points where attr has a value."""
    xs = []
    ys = []
    for point in series:
        value = getattr(point, attr)
        if value is not None:
            xs.append(point.distance / 1000)
            ys.append(value)
    return xs, ys


def generate_speed_chart(
    series: list[ComparisonPoint],
    avg_speed: int | None = None,
    avg_traffic_speed: int | None = None,
    imperial: bool = False,
) -> bytes:
    """Render the baseline/traffic speed comparison as a PNG.

    The traffic line is omitted when the series holds no traffic speeds.
    """
    factor = 0.621371 if imperial else 1.0
    speed_unit = 'mph' if imperial else 'km/h'
    dist_unit = 'mi' if imperial else 'km'

    fig, ax = plt.subplots(figsize=(10, 3))
    try:
        xs, ys = _series_values(series, 'speed')
        if xs:
            xs = [x * factor for x in xs]
            ys = [y * factor for y in ys]
            label = 'Regular'
            if avg_speed:
                label += f' ({avg_speed * factor:.0f} {speed_unit})'
            ax.fill_between(xs, ys, color=BASELINE_COLOR, alpha=0.25)
            ax.plot(xs, ys, color=BASELINE_COLOR, linewidth=1.5, label=label)

        txs, tys = _series_values(series, 'traffic_speed')
        if txs:
            txs = [x * factor for x in txs]
            tys = [y * factor for y in tys]
            label = 'Traffic'
            if avg_traffic_speed:
                label += f' ({avg_traffic_speed * factor:.0f} {speed_unit})'
            ax.plot(txs, tys, color=TRAFFIC_COLOR, linewidth=1.5, linestyle='--', label=label)

        ax.set_xlabel(f'Distance ({dist_unit})', fontsize=10)
        ax.set_ylabel(f'Speed ({speed_unit})', fontsize=10)
        ax.set_ylim(bottom=0)
        if xs or txs:
            ax.set_xlim(0, max(xs + txs))
            ax.legend(loc='upper right', fontsize=9, frameon=False)
        ax.spines['top'].set_visible(False)
        ax.spines['right'].set_visible(False)
        ax.grid(axis='y', alpha=0.3)

        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=100, bbox_inches='tight')
        return buf.getvalue()
    finally:
        plt.close(fig)
