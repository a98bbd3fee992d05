"""
Narrative Module - prompt assembly and merging of LLM output.

- prompts.py: match prompt and methodology text
- merge.py: structured-output parsing and the authoritative score merge
- memo.py: pitch memo firm profile, prospect brief and stage prompts
- compliance.py: compliance gap analysis prompt and result normalization
"""

from core.narrative.merge import merge_match_analysis, parse_structured_response
from core.narrative.prompts import build_match_prompt, build_methodology

__all__ = [
    'build_match_prompt', 'build_methodology',
    'merge_match_analysis', 'parse_structured_response',
]
