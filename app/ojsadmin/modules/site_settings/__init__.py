"""Site-wide settings: setup, languages, bulk emails, appearance and theme."""
