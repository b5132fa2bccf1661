# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs. They
are the physical tuning of the board (gravity, radii, speed caps) and the
rendering properties of the replay window. Anything that is part of a run's
configuration (board size, seed, target slot) lives in config.json instead.
"""

# --- Physics ---
# Gravitational acceleration in px/s^2 (9.8 m/s^2 at 100px = 1m).
GRAVITY = 980.0
# Energy retained on bounce (1 = perfect bounce).
RESTITUTION = 0.75
BALL_RADIUS = 9.0
PEG_RADIUS = 7.0
# Ball radius + peg radius.
COLLISION_RADIUS = 16.0
# Fixed simulation tick (60 ticks per second).
DT = 1 / 60
# Maximum downward velocity (px/s).
TERMINAL_VELOCITY = 600.0
# Board border wall thickness in pixels.
BORDER_WIDTH = 12.0
# Minimum speed after a peg bounce, prevents dead stops.
MIN_BOUNCE_VELOCITY = 30.0
# Maximum velocity component in any direction.
MAX_VELOCITY = 750.0
# Maximum total speed after all effects.
MAX_TOTAL_SPEED = 800.0
# Maximum distance the ball may travel in one tick without a peg hit.
MAX_DIST_PER_FRAME = 13.2
# Horizontal air drag applied every tick.
AIR_DRAG = 0.998
# Distance kept between ball and peg surfaces after a correction.
SEPARATION = 0.1
# Frames before the same peg may register another hit.
COOLDOWN_FRAMES = 10
# Bounds for the angle perturbation applied on a peg bounce (radians).
BOUNCE_RANDOMNESS_MIN = 0.2
BOUNCE_RANDOMNESS_MAX = 0.8

# --- Bucket physics ---
SLOT_WALL_THICKNESS = 3.0
# Bucket walls remove extra energy on top of restitution.
BUCKET_WALL_DAMPING = 0.6
BUCKET_FLOOR_DAMPING = 0.5
# Floor sits slightly below the visual bottom to match slot overflow.
BUCKET_FLOOR_OFFSET = 5.0
# Bounces weaker than this come to rest on the floor.
FLOOR_REST_SPEED = 30.0
FLOOR_FRICTION = 0.9
# Size of the random horizontal kick on a floor bounce (px/s).
FLOOR_KICK = 20.0
SETTLE_SPEED = 5.0
# The ball is allowed this far below the board for slot overflow.
BOTTOM_OVERFLOW = 10.0

# --- Board layout ---
DEFAULT_BOARD_WIDTH = 375
DEFAULT_BOARD_HEIGHT = 500
CSS_BORDER = 2
DEFAULT_PEG_ROWS = 10
DEFAULT_SLOT_COUNT = 6
# Fixed column count keeps peg spacing independent of prize count.
OPTIMAL_PEG_COLUMNS = 6
# Share of the board height used for the peg field.
PLAYABLE_HEIGHT_RATIO = 0.65
PEG_TOP_OFFSET = 20.0
# Start height of the ball, measured from the border.
DROP_HEIGHT_OFFSET = 10.0

# Responsive peg/ball sizing for the layout clearance.
SMALL_VIEWPORT_WIDTH = 360
SMALL_PEG_RADIUS = 6.0
SMALL_BALL_RADIUS = 6.0
SMALL_CLEARANCE = 8.0
NORMAL_PEG_RADIUS = 7.0
NORMAL_BALL_RADIUS = 7.0
NORMAL_CLEARANCE = 10.0

# Bucket heights by slot width.
NARROW_SLOT_THRESHOLD = 40.0
SMALL_SLOT_THRESHOLD = 50.0
NARROW_BUCKET_HEIGHT = 105.0
SMALL_BUCKET_HEIGHT = 95.0
STANDARD_BUCKET_HEIGHT = 90.0

# Drop zones as fractions of the content width.
DROP_ZONE_RANGES = {
    "left": (0.05, 0.15),
    "left-center": (0.25, 0.35),
    "center": (0.45, 0.55),
    "right-center": (0.65, 0.75),
    "right": (0.85, 0.95),
}
DROP_ZONE_POSITIONS = {
    "left": 0.1,
    "left-center": 0.3,
    "center": 0.5,
    "right-center": 0.7,
    "right": 0.9,
}
# Half-width of the search window when no drop zone is selected.
CLASSIC_DROP_RANGE = 2.5

# --- Render cache ---
SQUASH_MIN_SPEED = 50.0
SQUASH_SPEED_SCALE = 800.0
MAX_SQUASH = 0.4
STRETCH_MIN_VY = 200.0
STRETCH_SPEED_SCALE = 1000.0
MAX_STRETCH = 0.3
SCALE_X_RANGE = (1.0 - MAX_STRETCH * 0.4, 1.0 + MAX_SQUASH * 0.5)
SCALE_Y_RANGE = (1.0 - MAX_SQUASH, 1.0 + MAX_STRETCH)
# Trail lengths by speed band (px/s).
TRAIL_SPEED_BANDS = (100.0, 300.0)
TRAIL_LENGTHS = (10, 16, 20)
MIN_TRAIL_LENGTH = 10
MAX_TRAIL_LENGTH = 20

# --- Visualization ---
FPS = 60
UI_PANEL_WIDTH = 220
BACKGROUND_COLOR = (24, 24, 24) # Dark Gray
BOARD_COLOR = (36, 36, 48)
BORDER_COLOR = (90, 90, 120)
PEG_COLOR = (200, 200, 220)
PEG_HIT_COLOR = (255, 204, 0) # Gold
BALL_COLOR = (255, 0, 102) # Hot Pink
TARGET_SLOT_COLOR = (0, 255, 102) # Bright Green
TRAIL_MAX_ALPHA = 160
# Frames a peg stays highlighted after a hit.
PEG_FLASH_FRAMES = 8

# --- Outcome steering ---
# Horizontal nudge toward the target slot per registered peg hit (px/s),
# scaled by steering strength and the bounce's random draw.
STEERING_NUDGE = 60.0
