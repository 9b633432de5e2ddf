"""Audio subsystem: microphone access and spectrum analysis."""
