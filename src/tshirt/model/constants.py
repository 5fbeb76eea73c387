"""Tshirt numerical constants.

Physical constants for the field-capacity calculation, the fixed soil column
depth, parameter names in canonical order and typical calibration ranges.
"""

# Physical constants
ATMOSPHERIC_PRESSURE_PASCALS: float = 101325.0  # [Pa]
WATER_SPECIFIC_WEIGHT: float = 9810.0  # [N/m^3]

# Fixed soil column depth [m]
SOIL_DEPTH_METERS: float = 2.0

# Field-capacity integration window below the water-table head [m]
FIELD_CAPACITY_Z_OFFSET: float = 0.5
FIELD_CAPACITY_Z_SPAN: float = 2.0

# Schaake partitioning: C * Ks / Ks_ref with C = 3, Ks_ref = 2e-6 m/s
SCHAAKE_MULTIPLIER: float = 3.0
SCHAAKE_REFERENCE_CONDUCTIVITY: float = 2.0e-6  # [m/s]

SECONDS_PER_DAY: float = 86400.0

# Model parameter names in canonical order
PARAM_NAMES: tuple[str, ...] = (
    "maxsmc",
    "wltsmc",
    "satdk",
    "satpsi",
    "slope",
    "b",
    "multiplier",
    "alpha_fc",
    "klf",
    "kn",
    "nash_n",
    "cgw",
    "expon",
    "max_groundwater_storage",
)

# Typical ranges used for out-of-range warnings
TYPICAL_RANGES: dict[str, tuple[float, float]] = {
    "maxsmc": (0.2, 0.7),  # Saturated soil moisture content [-]
    "wltsmc": (0.0, 0.2),  # Wilting point soil moisture content [-]
    "satdk": (0.0, 1e-4),  # Saturated hydraulic conductivity [m/s]
    "satpsi": (0.01, 1.0),  # Saturated capillary head [m]
    "slope": (0.0, 1.0),  # Slope coefficient [-]
    "b": (2.0, 15.0),  # Clapp-Hornberger exponent [-]
    "multiplier": (0.0, 1000.0),  # Lateral conductivity multiplier [-]
    "alpha_fc": (0.1, 1.0),  # Field-capacity suction coefficient [-]
    "klf": (0.0, 1.0),  # Lateral flow coefficient [m/s]
    "kn": (0.0, 1.0),  # Nash cascade coefficient [m/s]
    "nash_n": (0, 10),  # Nash cascade stages [-]
    "cgw": (0.0, 1.0),  # Groundwater flow coefficient [m/s]
    "expon": (0.0, 10.0),  # Groundwater flow exponent [-]
    "max_groundwater_storage": (0.001, 1.0),  # Maximum groundwater storage [m]
}
