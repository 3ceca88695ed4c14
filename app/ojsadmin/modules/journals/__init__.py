"""
Journals module.

- Hosted journals list and journal creation (site admin)
- Journal settings wizard (masthead, contact, appearance, languages, indexing, emails)
- Generic per-journal, per-section key/value settings store
- JSON settings endpoint used by the editor screens
- Public journal, issue and article pages
"""
