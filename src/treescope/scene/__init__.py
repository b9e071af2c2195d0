"""Scene geometry, camera, per-frame state and lifecycle."""
