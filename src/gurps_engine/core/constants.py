"""Engine-wide constants for the GURPS character engine.

Attribute identifiers, data version bounds and the fixed strings the engine
writes into tooltips and unsatisfied-prerequisite reasons.
"""

from __future__ import annotations

# =============================================================================
# Attribute Identifiers
# =============================================================================

STRENGTH_ID = "st"
DEXTERITY_ID = "dx"
INTELLIGENCE_ID = "iq"
HEALTH_ID = "ht"
WILL_ID = "will"
PERCEPTION_ID = "per"
BASIC_SPEED_ID = "basic_speed"
BASIC_MOVE_ID = "basic_move"
FATIGUE_POINTS_ID = "fp"
HIT_POINTS_ID = "hp"

DODGE_ID = "dodge"
"""Pseudo-attribute targeted by dodge bonuses."""

PARRY_ID = "parry"
"""Pseudo-attribute targeted by parry bonuses."""

BLOCK_ID = "block"
"""Pseudo-attribute targeted by block bonuses."""

SIZE_MODIFIER_ID = "sm"
"""Variable name resolving to the adjusted size modifier."""

FRIGHT_CHECK_ID = "fright_check"
"""Pseudo-attribute targeted by fright check bonuses."""

TEN_ID = "10"
"""Skill default type meaning "a flat 10"."""

SKILL_ID = "skill"
"""Skill default type meaning "another skill"."""

ALL_LOCATIONS_ID = "all"
"""DR bonus location matching every top-level hit location."""

# =============================================================================
# Data Versions
# =============================================================================

MINIMUM_DATA_VERSION = 2
"""Oldest persisted data version the engine accepts."""

CURRENT_DATA_VERSION = 5
"""Version written by this engine; anything newer is rejected."""

# =============================================================================
# Recalculation
# =============================================================================

DEFAULT_MAX_ITERATIONS = 5
"""Default cap on feature/prerequisite/level passes."""

PREREQ_PREFIX = "\n● "
"""Line prefix for each unmet prerequisite in a reason string."""

PREREQ_NOT_MET = "Prerequisites have not been met:"

RECONCILIATION_REASON = "Reconciliation"
"""Reason recorded when the points ledger disagrees with the total."""

EQUIPMENT_PENALTY = -5
"""Skill penalty for missing required equipment."""

EQUIPMENT_PENALTY_WITH_TL = -10
"""Skill penalty for missing required equipment on a tech-level skill."""

MAX_COST_REDUCTION = 80
"""Upper bound, in percent, on attribute cost reductions."""

MAX_LIMITATION = -80
"""Lower bound, in percent, on combined trait limitations."""

ALTERNATIVE_ABILITY_PERCENT = 20
"""Percentage paid for every non-primary alternative ability."""

RULE_OF_20 = 20
"""Cap applied to attribute defaults under the rule of 20."""
