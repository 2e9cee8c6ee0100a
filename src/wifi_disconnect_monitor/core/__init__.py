"""Monitoring core: log sink, prober, monitor loop, event collector, report."""
