"""Site configuration.

Every field is read by the dispatcher, the page defaults or the template
environment. Configs are frozen; derive variants with ``dataclasses.replace``.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SiteConfig:
    """Site configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = SiteConfig(debug=True, redirect_status=303)
    """

    # Development
    debug: bool = False  # Development mode: reload modules, show stacks on the error page

    # Responses
    redirect_status: int = 302

    # Hydration
    page_element_id: str = "__SITE__"
    page_data_global: str = "__SITE_DATA__"

    # Forms: accept multipart submissions alongside url-encoded ones
    form_multipart: bool = True

    # Templates
    autoescape: bool = True
