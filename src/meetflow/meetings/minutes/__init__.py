"""Post-transcription text stages -- minutes, action items, summary.

MinutesSynthesizer and SummarySynthesizer produce free text through
LLMService.completion; ActionItemExtractor uses LLMService.structured
(instructor + litellm) for a schema-validated action-item list.
"""
