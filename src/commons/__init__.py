"""Commons package - shared settings, telemetry and storage clients."""
