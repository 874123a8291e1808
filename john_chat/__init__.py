"""Chat back-end for the John avatar: reply parsing, status panel, transcripts."""
