FLEET_SUPPLIES = 'Fleet Supplies'
ADMIN_COSTS = 'Admin Costs'
SAFARI_EXPENSE = 'Safari Expense'
PETTY_CASH = 'Petty Cash'
OPERATING_EXPENSE = 'Operating Expense'

SEVEN_SEATER = '7 Seater'
FIVE_SEATER = '5 Seater'
OTHER_CAPACITY = 'Other'

# First match wins, so the order matters ("fleet supplies" is fleet, not admin).
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
	(FLEET_SUPPLIES, ('fleet', 'vehicle', 'repair', 'maintenance', 'fuel')),
	(ADMIN_COSTS, ('admin', 'office', 'supplies', 'utilities', 'rent')),
	(SAFARI_EXPENSE, ('safari', 'tour', 'accommodation', 'park fees')),
	(PETTY_CASH, ('petty', 'cash')),
)

_SEVEN_SEATER_ALIASES = {'large', 'suv'}
_FIVE_SEATER_ALIASES = {'medium', 'sedan'}


def normalize_expense_category(raw: str | None) -> str:
	label = (raw or '').strip().lower()
	for category, keywords in _CATEGORY_KEYWORDS:
		if any(keyword in label for keyword in keywords):
			return category
	return OPERATING_EXPENSE


def normalize_capacity(raw: str | None) -> str:
	label = (raw or '').strip().lower()
	if '7' in label or label in _SEVEN_SEATER_ALIASES:
		return SEVEN_SEATER
	if '5' in label or label in _FIVE_SEATER_ALIASES:
		return FIVE_SEATER
	return OTHER_CAPACITY
