"""Upstream adapters.

Every public coroutine here resolves to a
:class:`~lofviewer.models.envelope.ResultEnvelope` and never raises.
"""
