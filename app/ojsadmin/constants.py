"""
Central constants for the journal administration console.
"""
from __future__ import annotations

APP_NAME = "OJS Admin Console"
APP_VERSION = "3.3.0.21"

# Locales that are installed on the site (code -> display name)
INSTALLED_LOCALES: dict[str, str] = {
    "en_US": "English",
    "id": "Bahasa Indonesia",
    "es_ES": "Español (España)",
    "fr_CA": "Français (Canada)",
    "ar": "العربية",
}
DEFAULT_LOCALE = "en_US"

# Role paths (Role.key). Order is the display order in the users screens.
ROLE_PATHS = (
    "admin",
    "manager",
    "editor",
    "section_editor",
    "reviewer",
    "author",
    "copyeditor",
    "layout_editor",
    "proofreader",
    "subscription_manager",
    "reader",
)
ROLE_NAMES = {
    "admin": "Site Administrator",
    "manager": "Journal Manager",
    "editor": "Journal Editor",
    "section_editor": "Section Editor",
    "reviewer": "Reviewer",
    "author": "Author",
    "copyeditor": "Copyeditor",
    "layout_editor": "Layout Editor",
    "proofreader": "Proofreader",
    "subscription_manager": "Subscription Manager",
    "reader": "Reader",
}

# Roles that a journal manager may disable bulk email for.
BULK_EMAIL_ROLES = (
    "manager",
    "editor",
    "section_editor",
    "reviewer",
    "author",
    "reader",
)

SUBMISSION_STATUSES = ("submitted", "in_review", "accepted", "published", "declined")
SUBMISSION_STAGES = ("submission", "review", "copyediting", "production")
STAGE_LABELS = {
    "submission": "Submission",
    "review": "Review",
    "copyediting": "Copyediting",
    "production": "Production",
}
STATUS_LABELS = {
    "submitted": "Submitted",
    "in_review": "In Review",
    "accepted": "Accepted",
    "published": "Published",
    "declined": "Declined",
}

THEMES = {
    "default": "Default",
    "light": "Light",
    "dark": "Dark",
}

# name -> description
TYPOGRAPHY_OPTIONS: dict[str, str] = {
    "Noto Sans": "A digital-native font designed by Google for extensive language support.",
    "Noto Serif": "A serif variant of Google's digital-native font.",
    "Noto Serif/Noto Sans": "A complementary pairing with serif headings and sans-serif body text.",
    "Noto Sans/Noto Serif": "A complementary pairing with sans-serif headings and serif body text.",
    "Lato": "A popular modern sans-serif font.",
    "Lora": "A wide-set serif font good for reading online.",
    "Lora/Open Sans": "A complimentary pairing with serif headings and sans-serif body text.",
}

SIDEBAR_BLOCKS = {
    "user": "User Block",
    "language": "Language Toggle Block",
    "navigation": "Navigation Block",
    "announcements": "Announcements Block",
}

MIN_PASSWORD_LENGTH_FLOOR = 6
