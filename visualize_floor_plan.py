from typing import Any, Optional

import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from warehouse_planner.visualization import PALLET_COLORS, ZONE_COLORS


def _init_figure(title: str) -> Figure:
    fig: Figure = plt.figure(figsize=(10, 6))
    ax = fig.add_subplot(111)
    ax.set_aspect("equal")
    ax.set_title(title)
    ax.set_xlabel("Length (m)")
    ax.set_ylabel("Width (m)")
    ax.grid(True, linestyle="--", linewidth=0.5, alpha=0.5)
    return fig


def _rgb(color: str) -> str:
    """'rgb(r, g, b)' -> '#rrggbb' for matplotlib"""
    values = color[color.index("(") + 1:color.index(")")].split(",")
    return "#" + "".join(f"{int(float(v)):02x}" for v in values[:3])


def create_floor_plan_figure(floor: Any, title: Optional[str] = None) -> Figure:
    """
    2D plan of one floor.
    Draws the outline, clearance band, loading and dock bands, the usable
    storage rectangle, declared zones and placed pallet stacks.
    """
    fig = _init_figure(title or f"Floor Plan – {floor.name}")
    ax = fig.axes[0]

    # Floor outline
    ax.add_patch(plt.Rectangle((0, 0), floor.length_m, floor.width_m,
                               fill=False, linewidth=2, color="black"))

    inset = floor.wall_clearance_m + floor.safety_clearance_m

    # Loading and dock bands sit inside the clearance band at either end of the length
    if floor.loading_zone_depth_m > 0:
        ax.add_patch(plt.Rectangle((inset, inset), floor.loading_zone_depth_m,
                                   max(0.0, floor.width_m - 2 * inset),
                                   color=_rgb(ZONE_COLORS["loading"]), alpha=0.3, label="Loading"))
    if floor.dock_zone_depth_m > 0:
        ax.add_patch(plt.Rectangle((floor.length_m - inset - floor.dock_zone_depth_m, inset),
                                   floor.dock_zone_depth_m, max(0.0, floor.width_m - 2 * inset),
                                   color=_rgb(ZONE_COLORS["dock"]), alpha=0.3, label="Dock"))

    # Usable storage rectangle
    if floor.usable_area_m2 > 0:
        ax.add_patch(plt.Rectangle((inset + floor.loading_zone_depth_m, inset),
                                   floor.usable_length_m, floor.usable_width_m,
                                   fill=False, linestyle="--", linewidth=1.5,
                                   color="steelblue", label="Usable area"))

    for index, zone in enumerate(floor.zones):
        if not zone.active:
            continue
        ax.add_patch(plt.Rectangle((zone.x_m, zone.y_m), zone.width_m, zone.height_m,
                                   color=_rgb(ZONE_COLORS.get(zone.zone_type, "rgb(180, 180, 180)")),
                                   alpha=0.35))
        ax.text(zone.x_m + zone.width_m / 2, zone.y_m + zone.height_m / 2,
                f"{zone.zone_type} {index + 1}", ha="center", va="center", fontsize=8)

    for placement in floor.placements:
        pallet = floor.pallets[placement.pallet_type]
        ax.add_patch(plt.Rectangle((placement.x_m, placement.y_m), pallet.length_m, pallet.width_m,
                                   color=_rgb(PALLET_COLORS[placement.pallet_type]), alpha=0.9))
        if placement.stack_count > 1:
            ax.text(placement.x_m + pallet.length_m / 2, placement.y_m + pallet.width_m / 2,
                    str(placement.stack_count), ha="center", va="center", fontsize=6, color="white")

    # Basic annotations
    ax.text(
        0.5,
        floor.width_m - 0.5,
        f"Usable: {floor.usable_area_m2:,.0f} m²\n"
        f"Standard: {floor.max_pallets('standard'):,}  Euro: {floor.max_pallets('euro'):,}",
        va="top",
        ha="left",
        fontsize=9,
        bbox=dict(boxstyle="round", facecolor="white", alpha=0.7),
    )

    handles, _ = ax.get_legend_handles_labels()
    if handles:
        ax.legend(loc="lower right", fontsize=8)

    ax.set_xlim(0, max(floor.length_m, 10))
    ax.set_ylim(0, max(floor.width_m, 10))

    return fig
