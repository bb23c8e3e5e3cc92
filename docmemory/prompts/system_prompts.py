"""
Centralized prompt templates.

Never hardcode prompts inside workflows or the model client.
Always import from here.
"""


# Retrieval-augmented query: the question, then the retrieved text
RAG_PROMPT_TEMPLATE = '{{$input}}\n\nText:\n"""{{$data}}\n"""'


# Marker replaced by chunk text in summarization prompts
TEXT_MARKER = "<TEXT>"

# Template variable the marker is bound to; chunk text travels as its value
TEXT_VARIABLE = "TEXT"
