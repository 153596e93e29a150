"""
boardroom.integrations - External Integrations
================================================

Adapters for services outside the orchestrator. Currently:

    - llm: the reasoning capability behind every executive agent
"""
