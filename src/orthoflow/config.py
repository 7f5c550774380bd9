"""
Configuration for the orthogonal routing services.

The constants below are the tuned defaults. Every service accepts an
optional RoutingConfig so a host can override them per editor instance
without touching module state.
"""

from dataclasses import dataclass

# =============================================================================
# ROUTING CONFIGURATION - Adjust these values to tune routing behavior
# =============================================================================

# --- Distance/Spacing Parameters (in canvas pixels) ---

# Grid step used when a drag opts into snapping
GRID_SIZE = 20

# Reference segment length; the drag gap to a neighbour is a quarter of it
MIN_SEGMENT_LENGTH = 40

# Closest a dragged segment may come to the far end of a neighbour
MIN_NEIGHBOR_GAP = MIN_SEGMENT_LENGTH / 4

# Minimum distance between a node boundary and a segment running alongside it
TERMINAL_STANDOFF = 20

# Bound applied to a drag direction nothing else limits
MAX_DRAG_DISTANCE = 500

# A moved terminal segment farther than this from its handle is detached
CONNECTION_TOLERANCE = 5

# Pointer distance from a segment midpoint that still counts as a hit
SEGMENT_HIT_THRESHOLD = 15

# --- Rendering ---

# Corner radius for rounded paths when the caller gives none
DEFAULT_CORNER_RADIUS = 8

# --- Scoring ---

# Cost reduction for a handle whose side already faces the target
FACING_BONUS = 25

# A preferred routing is kept unless it is more than this fraction longer
ALTERNATIVE_LENGTH_THRESHOLD = 0.2

# --- Interaction ---

# Minimum spacing between evaluated pointer-move samples (one per frame)
FRAME_INTERVAL_MS = 16

# --- Telemetry ---

# Routing decisions retained by the feedback system
MAX_HISTORY_SIZE = 100

# =============================================================================


@dataclass
class RoutingConfig:
    """Per-instance overrides for the routing constants."""

    grid_size: float = GRID_SIZE
    min_neighbor_gap: float = MIN_NEIGHBOR_GAP
    terminal_standoff: float = TERMINAL_STANDOFF
    max_drag_distance: float = MAX_DRAG_DISTANCE
    connection_tolerance: float = CONNECTION_TOLERANCE
    segment_hit_threshold: float = SEGMENT_HIT_THRESHOLD
    default_corner_radius: float = DEFAULT_CORNER_RADIUS
    facing_bonus: float = FACING_BONUS
    alternative_length_threshold: float = ALTERNATIVE_LENGTH_THRESHOLD
    frame_interval_ms: float = FRAME_INTERVAL_MS
    max_history_size: int = MAX_HISTORY_SIZE
