"""Keepsake — memory data engine for a couples' shared journal."""
