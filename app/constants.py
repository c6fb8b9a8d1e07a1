"""Shared constants for jewelry price calculation."""

# Overhead applied on top of metal + stones (craftsmanship)
OVERHEAD_RATE = 0.25

# Base currency of every breakdown; USD is always derived from it
BASE_CURRENCY = 'INR'
DERIVED_CURRENCY = 'USD'

# Stone slot ids the UI sends when nothing is selected
NO_STONE_SENTINELS = ('none_selected', 'none', '')

# Breakdown fields and their JSON keys, in display order
BREAKDOWN_KEYS = {
    'metal_cost': 'metalCost',
    'primary_stone_cost': 'primaryStoneCost',
    'secondary_stone_cost': 'secondaryStoneCost',
    'other_stone_cost': 'otherStoneCost',
    'overhead': 'overhead',
}

# Client debounce quiet period
DEFAULT_DEBOUNCE_SECONDS = 0.5

# Market data source tags
SOURCE_CACHE = 'cache'
SOURCE_ESTIMATE = 'estimate'
SOURCE_DEFAULT = 'default'
