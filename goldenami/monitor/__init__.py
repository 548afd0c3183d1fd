"""Terminal display of golden image history — read-only.

Modules
-------
renderer
    ``ImageRenderer`` turns image records, validation results and build
    snapshots into Rich renderables.
"""
