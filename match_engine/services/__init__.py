"""
Services Layer

Pure scheduling logic that:
- Accepts plain records (teams, fields, matches, rankings)
- Returns drafts and results, never database rows
- Does NOT own storage; reads and writes go through the collaborator
  protocols in services.records
- Takes all randomness from one injected RandomSource
"""
