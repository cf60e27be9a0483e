"""Site Report - turns site-visit photos and notes into a written inspection report PDF.

Captured evidence (photos with typed or spoken notes) is elaborated by an LLM
into a narrative, which is parsed per photo and laid out into a paginated PDF.

Components:
- schemas: evidence, report and parsed-narrative models
- pipeline: report intake and the create/analyze/edit/assemble orchestrator
- parsing: narrative section splitting and label-anchored field extraction
- rendering: page planning and PDF drawing
- llm / services: narrative generation, captioning, transcription, mail
- store: in-memory and SQLite report stores
- main_api: HTTP endpoints
"""
