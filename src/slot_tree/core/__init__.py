"""Slot tree core: configuration, errors, types, tree engine and store."""
