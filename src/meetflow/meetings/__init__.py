"""Meeting processing module -- schemas, persistence and the processing pipeline.

Provides the meeting data layer (Pydantic schemas, SQLAlchemy model,
MeetingRepository), local media storage, the speech-to-text adapter,
and the PipelineOrchestrator that turns an uploaded recording into a
transcript, minutes, a stakeholder summary and tasks.
"""
