"""
Bundled plugin catalog.

Plugins are not loaded or executed by this console; the catalog only drives
the listing screens and the stored enabled/disabled flags.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PluginInfo:
    key: str
    category: str
    name: str
    description: str
    enabled_by_default: bool = False


CATEGORIES = {
    "metadata": "Metadata Plugins",
    "auth": "Authorization Plugins",
    "blocks": "Block Plugins",
    "gateways": "Gateway Plugins",
    "generic": "Generic Plugins",
    "importexport": "Import/Export Plugins",
    "themes": "Theme Plugins",
}

PLUGINS: tuple[PluginInfo, ...] = (
    PluginInfo("dc11", "metadata", "Dublin Core 1.1 meta-data", "Contributes Dublin Core version 1.1 schemas and application adapters.", True),
    PluginInfo("browse_block", "blocks", "Browse Block", 'This plugin provides sidebar "browse" tools.'),
    PluginInfo("developed_by_block", "blocks", '"Developed By" Block', 'This plugin provides sidebar "Developed By" information.'),
    PluginInfo("information_block", "blocks", "Information Block", "This plugin provides sidebar information link.", True),
    PluginInfo("language_toggle_block", "blocks", "Language Toggle Block", "This plugin provides the sidebar language toggler.", True),
    PluginInfo("make_submission_block", "blocks", '"Make a Submission" Block', 'This plugin provides a sidebar block with a "Make a Submission" link.'),
    PluginInfo("subscription_block", "blocks", "Subscription Block", "This plugin provides sidebar subscription information.", True),
    PluginInfo("resolver", "gateways", "Resolver Plugin", "This plugin resolves issues and articles based on citation information.", True),
    PluginInfo("acron", "generic", "Acron Plugin", "This plugin attempts to reduce the dependence of the application on periodic scheduling tools such as 'cron.'", True),
    PluginInfo("announcement_feed", "generic", "Announcement Feed Plugin", "This plugin produces RSS/Atom web syndication feeds for journal announcements."),
    PluginInfo("citation_style_language", "generic", "Citation Style Language", "Allow readers to get a published article's citation in one of several formats supported by the Citation Style Language."),
    PluginInfo("custom_block_manager", "generic", "Custom Block Manager", "This Plugin lets you manage (add, edit and delete) custom sidebar blocks."),
    PluginInfo("driver", "generic", "DRIVER", "The DRIVER plugin extends the OAI-PMH interface according to the DRIVER Guidelines 2.0."),
    PluginInfo("dublin_core_indexing", "generic", "Dublin Core Indexing Plugin", "This plugin embeds Dublin Core meta tags in article views for indexing purposes.", True),
    PluginInfo("google_analytics", "generic", "Google Analytics Plugin", "Integrate with Google Analytics, Google's web site traffic analysis application."),
    PluginInfo("google_scholar", "generic", "Google Scholar Indexing Plugin", "This plugin enables indexing of published content in Google Scholar.", True),
    PluginInfo("html_article_galley", "generic", "HTML Article Galley", "This plugin provides rendering support for HTML Article Galleys.", True),
    PluginInfo("lens_galley", "generic", "eLife Lens Article Viewer", "This plugin provides rendering support for JATS XML galleys using eLife Lens.", True),
    PluginInfo("orcid_profile", "generic", "ORCID Profile Plugin", "Allows for the import of user profile information from ORCID."),
    PluginInfo("pdfjs_viewer", "generic", "PDF.JS PDF Viewer", "This plugin uses the pdf.js PDF viewer to embed PDFs on the article and issue galley view pages.", True),
    PluginInfo("recommend_by_author", "generic", "Recommend Articles by Author", "This plugin inserts a list of articles by the same author on the article abstract page."),
    PluginInfo("recommend_similar", "generic", "Recommend Similar Articles", "This plugin adds a list of similar articles to the article abstract page."),
    PluginInfo("static_pages", "generic", "Static Pages Plugin", "This plugin allows Static Content Management."),
    PluginInfo("tinymce", "generic", "TinyMCE Plugin", "This plugin enables WYSIWYG editing of textareas using the TinyMCE content editor."),
    PluginInfo("usage_event", "generic", "Usage event", "Creates a hook that provides usage event in a defined format."),
    PluginInfo("usage_stats", "generic", "Usage Statistics", "Present data objects usage statistics."),
    PluginInfo("web_feed", "generic", "Web Feed Plugin", "This plugin produces RSS/Atom web syndication feeds for the current issue.", True),
    PluginInfo("crossref_export", "importexport", "Crossref XML Export Plugin", "Export article metadata in Crossref XML format."),
    PluginInfo("doaj_export", "importexport", "DOAJ Export Plugin", "Export journal metadata for DOAJ.", True),
    PluginInfo("native_xml", "importexport", "Native XML Plugin", "Import and export articles and issues in the native XML format.", True),
    PluginInfo("pubmed_export", "importexport", "PubMed XML Export Plugin", "Export article metadata in PubMed XML format for indexing in MEDLINE.", True),
    PluginInfo("users_xml", "importexport", "Users XML Plugin", "Import and export users.", True),
    PluginInfo("default_theme", "themes", "Default Theme", "This theme implements the default theme.", True),
)

PLUGINS_BY_KEY = {p.key: p for p in PLUGINS}
