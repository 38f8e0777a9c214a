"""
3D Visualization for warehouse floors

Generates interactive Plotly figures showing:
- Floor slab and the usable storage envelope (footprint x clear stacking height)
- Declared zones (storage, loading, dock, office...)
- Placed pallet stacks from the floor plan
- Capacity comparison across pallet types

Designed for Streamlit integration.
"""

from typing import Dict, List, Optional

import numpy as np
import plotly.graph_objects as go

from .floor import FloorPlan
from .geometry.pallet_types import PalletType


# ===== COLOR PALETTE =====

COLORS = {
    'slab': 'rgb(190, 190, 190)',
    'envelope': 'rgba(70, 130, 180, 0.18)',
    'pallet_standard': 'rgb(196, 140, 72)',
    'pallet_euro': 'rgb(120, 160, 90)',
    'pallet_custom': 'rgb(150, 110, 170)',
}

ZONE_COLORS = {
    'storage': 'rgb(100, 149, 237)',
    'loading': 'rgb(255, 165, 0)',
    'dock': 'rgb(220, 90, 70)',
    'office': 'rgb(160, 160, 160)',
    'staging': 'rgb(240, 200, 80)',
}

PALLET_COLORS = {
    PalletType.STANDARD: COLORS['pallet_standard'],
    PalletType.EURO: COLORS['pallet_euro'],
    PalletType.CUSTOM: COLORS['pallet_custom'],
}

CAMERA_PRESETS = {
    'isometric': dict(
        eye=dict(x=1.5, y=1.5, z=1.0),
        center=dict(x=0, y=0, z=0),
        up=dict(x=0, y=0, z=1),
    ),
    'plan': dict(
        eye=dict(x=0, y=0, z=2.5),
        center=dict(x=0, y=0, z=0),
        up=dict(x=0, y=1, z=0),
    ),
}


def create_box_mesh(x_start: float, x_end: float,
                    y_start: float, y_end: float,
                    z_bottom: float, height: float,
                    color: str, name: str = '',
                    opacity: float = 0.7) -> go.Mesh3d:
    """
    Create a rectangular box as a Mesh3d trace

    Args:
        x_start, x_end: Extent along the floor length (meters)
        y_start, y_end: Extent along the floor width (meters)
        z_bottom: Base elevation
        height: Box height
        color: RGB color string
        name: Trace name (empty hides it from the legend)
        opacity: Transparency
    """
    x = [x_start, x_end, x_end, x_start] * 2
    y = [y_start, y_start, y_end, y_end] * 2
    z = [z_bottom] * 4 + [z_bottom + height] * 4

    i = [0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 0, 0]
    j = [1, 3, 2, 5, 3, 6, 0, 7, 5, 7, 4, 1]
    k = [2, 2, 6, 6, 7, 7, 4, 4, 6, 6, 7, 5]

    return go.Mesh3d(
        x=x, y=y, z=z,
        i=i, j=j, k=k,
        color=color,
        opacity=opacity,
        name=name,
        showlegend=bool(name),
        hovertemplate=f"<b>{name}</b><br>X: %{{x:.1f}} m<br>Y: %{{y:.1f}} m<br>Z: %{{z:.1f}} m<extra></extra>" if name else None
    )


def create_floor_slab(floor: FloorPlan, thickness: float = 0.2) -> go.Mesh3d:
    return create_box_mesh(0, floor.length_m, 0, floor.width_m, -thickness, thickness,
                           color=COLORS['slab'], name=f'{floor.name} slab', opacity=0.9)


def create_storage_envelope(floor: FloorPlan) -> Optional[go.Mesh3d]:
    """Usable rectangle extruded to the clear stacking height"""
    if floor.usable_area_m2 <= 0 or floor.clear_stacking_height_m <= 0:
        return None
    inset = floor.wall_clearance_m + floor.safety_clearance_m
    x_start = inset + floor.loading_zone_depth_m
    y_start = inset
    return create_box_mesh(
        x_start, x_start + floor.usable_length_m,
        y_start, y_start + floor.usable_width_m,
        0.0, floor.clear_stacking_height_m,
        color=COLORS['envelope'], name='Storage envelope', opacity=0.18,
    )


def create_zone_traces(floor: FloorPlan, zone_height: float = 0.05) -> List[go.Mesh3d]:
    traces = []
    for index, zone in enumerate(floor.zones):
        if not zone.active:
            continue
        x_min, y_min, x_max, y_max = zone.bounds()
        traces.append(create_box_mesh(
            x_min, x_max, y_min, y_max, 0.0, zone_height,
            color=ZONE_COLORS.get(zone.zone_type, 'rgb(180, 180, 180)'),
            name=f'{zone.zone_type.title()} zone {index + 1} ({zone.area_m2:,.0f} m²)',
            opacity=0.6,
        ))
    return traces


def create_pallet_stacks(floor: FloorPlan) -> List[go.Mesh3d]:
    """One box per placed stack, height = stack count x pallet height"""
    traces = []
    for placement in floor.placements:
        pallet = floor.pallets[placement.pallet_type]
        traces.append(create_box_mesh(
            placement.x_m, placement.x_m + pallet.length_m,
            placement.y_m, placement.y_m + pallet.width_m,
            0.0, placement.stack_count * pallet.height_m,
            color=PALLET_COLORS[placement.pallet_type],
            opacity=0.85,
        ))
    return traces


def create_capacity_grid(floor: FloorPlan, pallet_type: PalletType = PalletType.STANDARD,
                         max_points: int = 2500) -> Optional[go.Scatter3d]:
    """
    Sampled grid of theoretical pallet positions inside the usable rectangle

    Markers sit at the top of each full stack; the grid is thinned so large
    floors stay responsive.
    """
    result = floor.capacity.by_type.get(pallet_type)
    if result is None or result.footprint_positions == 0:
        return None

    pallet = result.pallet
    columns = max(1, int(floor.usable_length_m // pallet.length_m))
    rows = max(1, int(floor.usable_width_m // pallet.width_m))
    step = max(1, int(np.ceil(np.sqrt(columns * rows / max_points))))

    inset = floor.wall_clearance_m + floor.safety_clearance_m
    xs = inset + floor.loading_zone_depth_m + (np.arange(0, columns, step) + 0.5) * pallet.length_m
    ys = inset + (np.arange(0, rows, step) + 0.5) * pallet.width_m
    grid_x, grid_y = np.meshgrid(xs, ys)
    grid_z = np.full_like(grid_x, result.stack_count * pallet.height_m)

    return go.Scatter3d(
        x=grid_x.ravel(), y=grid_y.ravel(), z=grid_z.ravel(),
        mode='markers',
        marker=dict(size=2, color=PALLET_COLORS[pallet_type]),
        name=f'{pallet_type.value.title()} positions (x{result.stack_count} high)',
        hoverinfo='skip',
    )


def setup_camera(fig: go.Figure, preset: str = 'isometric') -> go.Figure:
    camera = CAMERA_PRESETS.get(preset.lower(), CAMERA_PRESETS['isometric'])
    fig.update_layout(
        scene=dict(
            camera=camera,
            aspectmode='data',
            xaxis=dict(title='Length (m)', backgroundcolor='rgb(240, 240, 240)', showbackground=True),
            yaxis=dict(title='Width (m)', backgroundcolor='rgb(240, 240, 240)', showbackground=True),
            zaxis=dict(title='Height (m)', backgroundcolor='rgb(230, 230, 240)', showbackground=True),
        ),
        showlegend=True,
        legend=dict(x=0.02, y=0.98, bgcolor='rgba(255, 255, 255, 0.8)'),
        margin=dict(l=0, r=0, t=30, b=0),
    )
    return fig


def create_3d_floor_model(floor: FloorPlan,
                          show_envelope: bool = True,
                          show_zones: bool = True,
                          show_pallets: bool = True,
                          show_grid: bool = False,
                          grid_pallet_type: PalletType = PalletType.STANDARD,
                          camera_preset: str = 'isometric') -> go.Figure:
    """
    Create the 3D view of a warehouse floor

    Returns:
        Plotly Figure object ready for display
    """
    fig = go.Figure()
    fig.add_trace(create_floor_slab(floor))

    if show_envelope:
        envelope = create_storage_envelope(floor)
        if envelope is not None:
            fig.add_trace(envelope)

    if show_zones:
        for trace in create_zone_traces(floor):
            fig.add_trace(trace)

    if show_pallets:
        for trace in create_pallet_stacks(floor):
            fig.add_trace(trace)

    if show_grid:
        grid = create_capacity_grid(floor, grid_pallet_type)
        if grid is not None:
            fig.add_trace(grid)

    fig = setup_camera(fig, preset=camera_preset)
    fig.update_layout(
        title=dict(
            text=f'{floor.name}<br>'
                 f'<sub>{floor.length_m:.1f} m × {floor.width_m:.1f} m × {floor.height_m:.1f} m | '
                 f'{floor.max_pallets(PalletType.STANDARD):,} standard pallets</sub>',
            x=0.5,
            xanchor='center',
        ),
        height=650,
    )
    return fig


def create_capacity_chart(floor: FloorPlan) -> go.Figure:
    """Grouped bars: maximum vs. placed pallets per pallet type"""
    types: List[PalletType] = list(floor.capacity.by_type)
    labels = [t.value.title() for t in types]
    maximum: Dict[PalletType, int] = floor.max_pallets_by_type

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=labels,
        y=[maximum.get(t, 0) for t in types],
        name='Maximum',
        marker_color=[PALLET_COLORS[t] for t in types],
        text=[f'{maximum.get(t, 0):,}' for t in types],
        textposition='outside',
    ))
    fig.add_trace(go.Bar(
        x=labels,
        y=[floor.placed_pallets_by_type.get(t, 0) for t in types],
        name='Placed',
        marker_color='rgb(90, 90, 90)',
    ))
    fig.update_layout(
        barmode='group',
        title='Pallet capacity by type',
        yaxis_title='Pallets',
        height=400,
        margin=dict(l=20, r=20, t=50, b=20),
    )
    return fig
