"""Service layer: ingest pipeline, synchronization, job tracking, cache signals, reads."""
