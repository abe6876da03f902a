"""Moderatable resources and the approve/hide/delete state machine."""
