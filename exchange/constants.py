"""Protocol constants for the exchange.

Centralizes pricing and reward parameters.
"""

# Maximum uint256 value
UINT256_MAX = 2**256 - 1

# Swap fee: 0.3% taken from the input amount
# amount_in_with_fee = amount_in * FEE_MULTIPLIER, compared against reserves * FEE_DENOMINATOR
FEE_MULTIPLIER = 997
FEE_DENOMINATOR = 1000

# Fixed-point scale for the reward accumulator (acc_reward_per_share)
ACC_PRECISION = 10**12

# Default emission rate, in reward token base units per block
DEFAULT_REWARD_PER_BLOCK = 10**18

# Holder used as the source of mints and the sink of burns
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Default custody address holding pool reserves and undistributed rewards
DEFAULT_CUSTODY = "0x00000000000000000000000000000000000c0ffe"
