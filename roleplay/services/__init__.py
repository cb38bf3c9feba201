"""
Service modules for the interview roleplay application.

Key components:
- relay_client: HTTP client for the relay (API key, feedback proxy, HeyGen token).
- feedback_agent: Scores interview answers and always returns a feedback record.
- plan_poller: Uploads resume and job description, polls the plan service and
  turns the finished plan into interviewer instructions.
- heygen_api: Server-side HeyGen calls made by the relay.
"""
