"""
Test fixtures for LLM Inference Layer.

Contains sample data for testing:
- sample_email.json: Example canonicalized email (based on user-provided input)
- sample_candidates.json: Example candidate keywords
- valid_llm_response.json: Valid LLM response conforming to schema
- invalid_llm_responses/: Directory with malformed responses for testing each validation stage
"""
