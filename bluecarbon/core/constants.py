"""
Blue carbon credit calculation and ledger constants.
"""

# Carbon to CO2 mass ratio (44/12)
CO2_PER_CARBON = 3.67

# 100-year global warming potentials
GWP_CH4 = 28
GWP_N2O = 298

# Molar masses (g/mol)
MOLAR_MASS_CH4 = 16.04
MOLAR_MASS_N2O = 44.01

HOURS_PER_YEAR = 24 * 365
M2_PER_HECTARE = 10000

# Measurement defaults
DEFAULT_CARBON_FRACTION = 0.47
DEFAULT_UNCERTAINTY_DEDUCTION = 0.20

# Order matters: validation reports missing fields in this order
REQUIRED_MEASUREMENT_FIELDS = (
    "bulk_density",
    "depth",
    "carbon_percent",
    "agb_biomass",
    "bgb_biomass",
    "ch4_flux",
    "n2o_flux",
    "baseline_carbon_stock",
)
OPTIONAL_MEASUREMENT_FIELDS = (
    "carbon_fraction",
    "uncertainty_deduction",
)

# Display precision for reported figures
REPORT_DECIMALS = 2

# Wallet addresses (base58 encoded 32-byte public keys)
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
WALLET_MIN_LENGTH = 32
WALLET_MAX_LENGTH = 44

# Program and system accounts that can never receive credits
DENYLISTED_ADDRESSES = frozenset({
    "11111111111111111111111111111111",  # system program
    "11111111111111111111111111111112",
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",  # SPL token program
    "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb",  # token-2022
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL",  # associated token program
    "SysvarRent111111111111111111111111111111111",
    "SysvarC1ock11111111111111111111111111111111",
    "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr",
    "BPFLoader2111111111111111111111111111111111",
    "BPFLoaderUpgradeab1e11111111111111111111111",
})

# Token issued per project
TOKEN_DECIMALS = 0
TOKEN_STANDARD = "SPL"
