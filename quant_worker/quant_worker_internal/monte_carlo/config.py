"""
PURPOSE: Simulation configuration and tunable constants for the risk quantification engine.

RESPONSIBILITIES:
- Define simulation hyperparameters (iteration limits, batch size, defaults)
- Percentile levels reported in the percentile table and allowed target percentiles
- Distribution parameter constants (PERT lambda, normal z-span)
- Histogram / exceedance curve resolution
- Job store retention
- Single responsibility: configuration only, no simulation logic
"""

# Simulation Parameters
DEFAULT_ITERATIONS = 10000  # Revision default in the risk register
MIN_ITERATIONS = 1
MAX_ITERATIONS = 1_000_000
RANDOM_SEED = None  # Set to int for reproducibility, None for OS entropy

# Iterations per batch. Each batch owns one child seed, so this value (not the
# worker count) fixes the random stream layout of a run.
BATCH_SIZE = 10000

# Target Percentile ("position adopted for planning and budgeting")
DEFAULT_TARGET_PERCENTILE = 80
ALLOWED_TARGET_PERCENTILES = (50, 70, 80, 85, 90, 95)

# Percentile Table rows (target percentile is merged in when missing)
PERCENTILE_TABLE_LEVELS = (5, 10, 20, 25, 30, 40, 50, 60, 70, 75, 80, 85, 90, 95, 99)

# Distribution Parameters
PERT_LAMBDA = 4.0  # Standard Beta-PERT peakedness
NORMAL_Z_SPAN = 2.56  # z(P90) - z(P10) for a standard normal, 2 * 1.28
NORMAL_FLOOR = None  # Lower clamp for normal samples, None = unbounded
ZERO_SPREAD_TOLERANCE = 1e-4  # p90 - p10 below this is a fixed value

# Sensitivity Analysis (Tornado Chart)
ZERO_VARIANCE_TOLERANCE = 1e-12  # Fraction of the largest risk variance treated as zero

# Output Configuration
HISTOGRAM_BINS = 50
EXCEEDANCE_MAX_POINTS = 200

# Job Store
JOB_COMPLETED_TTL_SECONDS = 15 * 60
JOB_FAILED_TTL_SECONDS = 5 * 60
JOB_PURGE_INTERVAL_SECONDS = 60


def get_iteration_limits():
    """Return the accepted iteration range."""
    return {
        "min": MIN_ITERATIONS,
        "max": MAX_ITERATIONS,
        "default": DEFAULT_ITERATIONS,
    }


def get_sampler_defaults():
    """Return default parameters for turning P10/P50/P90 into distributions."""
    return {
        "pert_lambda": PERT_LAMBDA,
        "z_span": NORMAL_Z_SPAN,
        "normal_floor": NORMAL_FLOOR,
    }


def get_percentile_levels(target_percentile):
    """Return sorted percentile table levels including the target percentile."""
    levels = set(PERCENTILE_TABLE_LEVELS)
    levels.add(int(target_percentile))
    return sorted(levels)
