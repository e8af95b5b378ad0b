"""Presenters rendering user-provided proposal text safely."""
