# Centralized collection names to prevent drift.

COL_USERS = "users"
COL_BOOKINGS = "bookings"
COL_VERIFICATIONS = "verifications"
COL_REVIEWS = "reviews"
COL_REPORTS = "reports"
COL_NOTIFICATIONS = "notifications"
COL_NOTIFICATION_CAMPAIGNS = "notification_campaigns"

# settings/municipalities holds {"list": [...]} used to seed analytics rows
COL_SETTINGS = "settings"
DOC_MUNICIPALITIES = "municipalities"

# Health probe reads this fixed doc; it need not exist.
COL_SYSTEM = "system"
DOC_HEALTHZ = "healthz"
