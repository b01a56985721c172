"""Convenience entry points that wire concrete collaborators (see `stail.api.tail`)."""
