"""Slot tree storage components."""
