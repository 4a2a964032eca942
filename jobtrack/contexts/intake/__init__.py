"""
Intake Context

Responsibilities:
- Accepts raw job posting text and drives one parse operation at a time
- Coordinates the chat-completion request (bounded retry, cancellation)
- Recovers a structured job record from imperfect model output
- Classifies failures and exposes progress phases to callers

Owns: Job posting extraction and its error taxonomy
Never: Persists records or renders UI
"""
