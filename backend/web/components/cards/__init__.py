"""
Card components for the marketplace admin dashboard.
"""

from .dashboard import ProfileField, ProfilePanel, SectionCard, SectionCardGrid

__all__ = ["ProfileField", "ProfilePanel", "SectionCard", "SectionCardGrid"]
