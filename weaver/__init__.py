"""n8n Weaver: conversational workflow builder for n8n.

A deterministic router hands a conversation between LLM agents that
gather requirements, plan a workflow in the compact Loom format,
validate it, and create it on an n8n instance.
"""

__version__ = "0.1.0"
