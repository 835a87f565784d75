# ----- Base values (UK 11kV) -----
V_BASE = 11e3 # Line voltage (V)
S_BASE = 1e6 # Base power (VA)
FREQ_HZ = 50

# ----- Voltage limits (ESQCR Regulation 6) -----
V_MIN = 0.94
V_MAX = 1.06
V_STATUTORY_MIN = 0.94
V_STATUTORY_MAX = 1.05 # Legal ceiling
V_NOMINAL = 1.0
V_LOW_ALARM = 0.95
V_HIGH_ALARM = 1.05
SOURCE_VOLTAGE_PU = 1.0 # Primary substation busbar before tapping

# ----- PV Parameters -----
# 1-based bus numbers, 200 kW rooftop aggregate per bus
PV_BUSES = [6, 10, 13, 16, 18, 22, 25, 28, 30, 31, 32, 33]
PV_RATED_KW = 200.0
PV_EFFICIENCY = 0.18
PV_AREA_M2 = 1111 # Area of a 200 kW installation
PV_TEMP_COEFF = 0.004
PV_REFERENCE_TEMP_C = 25.0

# ----- OLTC Parameters -----
OLTC_CONFIG = {
    'v_nominal': 1.0,
    'tap_range': (-8, 8), # 17 positions
    'tap_step': 0.00625, # 0.625% per step
    'dead_band': 0.01,
    'delay': 60, # s
    'v_trigger_high': 1.03,
    'v_trigger_low': 0.97,
    'mech_delay': 5, # s
    'blocking_time': 300, # s, anti-hunting
    'lifetime': 200000, # rated operations
    'monitored_bus': 18,
}

# ----- PV inverter Q(U) droop (EN 50549-1:2019) -----
INVERTER_CONFIG = {
    'q_max': 0.33, # pu of inverter rating
    'v_points': [0.95, 0.98, 1.02, 1.05],
    'q_points': [0.33, 0.0, 0.0, -0.33],
    'response_time': 0.5, # s
    'droop_slope': 0.33 / 0.07,
}

# ----- Simulation parameters -----
# solver/max_step/rel_tol are kept for the external transient engine,
# step_s drives the quasi-static pandapower run
SIM_PARAMS = {
    'stop_time': 86400, # 24 h
    'sample_time': 1,
    'solver': 'ode23tb',
    'max_step': 0.5e-3,
    'rel_tol': 1e-4,
    'step_s': 60,
}
CASES = {
    'no_control': 'Case 1: Uncontrolled',
    'oltc_only': 'Case 2: OLTC only',
    'coordinated': 'Case 3: Coordinated control (OLTC + Q(U))',
}

# ----- REFIT data -----
REFIT_DATE = '2014-07-24' # Day used in the paper
REFIT_DATA_FOLDER = 'data/REFIT'
REFIT_LOAD_FILE = 'House_1_{date}.csv'
REFIT_PV_FILE = 'Solar_{date}.csv'
P_DIVERSITY_FACTOR = 0.85
Q_DIVERSITY_FACTOR = 0.75
MINUTES_PER_DAY = 1440
RANDOM_SEED = 42

# Synthetic day, 1-minute resolution
SYNTHETIC_P_BASE_KW = 50
SYNTHETIC_P_PEAK_KW = 150
SYNTHETIC_Q_RATIO = 0.5
SYNTHETIC_P_NOISE = 0.10
SYNTHETIC_Q_NOISE = 0.15
SYNTHETIC_PEAK_IRRADIANCE = 900 # W/m2
CLOUD_WINDOW_H = (14.1, 14.3)
CLOUD_FACTOR = 0.3

# ----- Files -----
PARAMETER_FILE = 'data/IEEE33_UK_parameters.npz'
RESULTS_DIR = 'results'
RESULTS_PATTERN = 'simulation_results_*.npz'
LOG_FILE = 'voltage_control.log'

# ----- Analysis -----
STEADY_STATE_FRACTION = 0.9
KEY_NODES = [1, 18, 33] # head, middle, end
TOP_LOSS_LINES = 10

# Colours reused across the voltage charts
LIMIT_COLOR = 'r'
NOMINAL_COLOR = 'k'
DEVIATION_COLOR = (0.3, 0.6, 0.9)
LOSS_COLOR = (0.9, 0.3, 0.3)
