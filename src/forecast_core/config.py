"""Configuration constants for the forecasting engine."""

# Model defaults
DEFAULT_TOLERANCE = 1e-6
DEFAULT_MAX_ITERATIONS = 1000

# Newton-Raphson finite-difference steps
GRADIENT_STEP = 1e-8
HESSIAN_STEP = 1e-4

# Diagonal regularization added before each Cholesky solve
HESSIAN_RIDGE = 1e-6
# Ridge growth factor and ceiling while the matrix is not positive definite
RIDGE_GROWTH = 10.0
MAX_RIDGE = 1e8

# Adaptive step-size schedule
INITIAL_STEP_SIZE = 0.01
STEP_GROWTH = 1.2
MAX_STEP_SIZE = 1.0
STEP_SHRINK = 0.5

# Forecast intervals
DEFAULT_CONFIDENCE = 0.95

# Model selection
DEFAULT_MAX_ORDER = 3
DEFAULT_MAX_SEASONAL_ORDER = 2
DEFAULT_MAX_DIFFERENCING = 2
DEFAULT_MAX_SEASONAL_DIFFERENCING = 1
MAX_SEASONAL_PERIODS = 2
DEFAULT_BATCH_SIZE = 4
DEFAULT_CV_FOLDS = 5

# Residual diagnostics
LJUNG_BOX_MAX_LAG = 20
OUTLIER_ZSCORE = 3.0

# Preprocessing
IQR_MULTIPLIER = 1.5

# Ensembles
DEFAULT_ENSEMBLE_WINDOW = 10
DEFAULT_ENSEMBLE_HOLDOUT = 10
