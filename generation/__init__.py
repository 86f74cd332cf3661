"""
Report Generation Pipeline
generation/

Steps:
1. Schema Walker     — template content + responses → ordered prompt fragments
2. Retrieval Engine  — salient responses → query → ranked knowledge snippets
3. Prompt Assembler  — fragments + snippets + analysis template, bounded in size
4. GPT Client        — single bounded model call, failures classified
5. Pipeline          — orchestrates 1-4 and attaches generation metadata

assistant.py reuses steps 2 and 4 for /ask and /analyze.
"""
