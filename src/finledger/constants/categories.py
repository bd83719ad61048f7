"""
Ledger vocabularies and the default category set seeded for every new user.
"""

# Transaction and category types
INCOME = "income"
EXPENSE = "expense"
TRANSFER = "transfer"

TRANSACTION_TYPES = (INCOME, EXPENSE, TRANSFER)

# Account types
ACCOUNT_TYPES = (
    "bank",
    "cash",
    "e-wallet",
    "investment",
)

# (name, type, icon) in seeding order: 6 income, 11 expense, 6 transfer
DEFAULT_CATEGORIES = [
    # Income
    ("Salary", INCOME, "💰"),
    ("Bonus", INCOME, "🎁"),
    ("Refund", INCOME, "↩️"),
    ("Investment Returns", INCOME, "📈"),
    ("Freelance", INCOME, "💼"),
    ("Other Income", INCOME, "➕"),
    # Expense
    ("Food & Dining", EXPENSE, "🍔"),
    ("Transport", EXPENSE, "🚗"),
    ("Utilities", EXPENSE, "💡"),
    ("Shopping", EXPENSE, "🛍️"),
    ("Entertainment", EXPENSE, "🎬"),
    ("Healthcare", EXPENSE, "🏥"),
    ("Education", EXPENSE, "📚"),
    ("Rent", EXPENSE, "🏠"),
    ("Insurance", EXPENSE, "🛡️"),
    ("Subscriptions", EXPENSE, "📱"),
    ("Other Expense", EXPENSE, "➖"),
    # Transfer
    ("Bank to Cash", TRANSFER, "🏦"),
    ("Cash to Bank", TRANSFER, "💵"),
    ("To E-Wallet", TRANSFER, "📲"),
    ("From E-Wallet", TRANSFER, "📱"),
    ("Investment Transfer", TRANSFER, "📊"),
    ("Internal Transfer", TRANSFER, "🔄"),
]

# Sunday-first weekday labels used by spending insights
DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
