"""
This package contains the LLM-based career analysis requester.

Its purpose is to turn a user's career profile into a prompt, send it to a
large language model, and validate the structured JSON analysis it returns.
"""
