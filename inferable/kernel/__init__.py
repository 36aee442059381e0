"""Kernel: registry, schema generation, dispatch and the service poll loop.

Nothing in the kernel talks HTTP directly; remote operations go through the
:class:`~inferable.kernel.ports.transport.Transport` port.
"""
