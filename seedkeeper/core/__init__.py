"""
Core application engine for the seed-time policy and live progress tracking.

The `SeedManager` wires the download client to the `LifecycleGovernor`, which
enforces the seeding cutoff, and the `ProgressProjector`, which mirrors job
progress to an external surface. Each runs on its own `PeriodicTask`.
"""
