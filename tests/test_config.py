"""Tests for perch.config — SiteConfig frozen dataclass."""

import dataclasses

import pytest

from perch.config import SiteConfig


class TestSiteConfig:
    def test_defaults(self) -> None:
        cfg = SiteConfig()

        assert cfg.debug is False
        assert cfg.redirect_status == 302
        assert cfg.page_element_id == "__SITE__"
        assert cfg.page_data_global == "__SITE_DATA__"
        assert cfg.form_multipart is True
        assert cfg.autoescape is True

    def test_fields_are_all_read_by_the_site(self) -> None:
        names = {field.name for field in dataclasses.fields(SiteConfig)}
        assert names == {
            "debug",
            "redirect_status",
            "page_element_id",
            "page_data_global",
            "form_multipart",
            "autoescape",
        }

    def test_override(self) -> None:
        cfg = SiteConfig(debug=True, redirect_status=303)

        assert cfg.debug is True
        assert cfg.redirect_status == 303

    def test_frozen(self) -> None:
        cfg = SiteConfig()

        with pytest.raises(AttributeError):
            cfg.debug = True  # type: ignore[misc]
