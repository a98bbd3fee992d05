"""Pitch memo stage definitions (draft, critique, revision plan, final revision)."""

from typing import List, Optional

from core.config_loader import GenerationConfig
from core.llm.system_prompts import (
    MEMO_CRITIQUE_SYSTEM_PROMPT,
    MEMO_PLAN_SYSTEM_PROMPT,
    MEMO_REVISION_SYSTEM_PROMPT,
    MEMO_SYSTEM_PROMPT,
)
from core.narrative.memo import (
    FirmProfile,
    MemoBrief,
    build_critique_prompt,
    build_draft_prompt,
    build_plan_prompt,
    build_revision_prompt,
)
from pipeline.stages import (
    GenerationMode,
    StageSpec,
    parse_final_revision,
    parse_list,
    parse_text,
)

DRAFT_STAGE = "draft"
CRITIQUE_STAGE = "critique"
PLAN_STAGE = "revision-plan"
REVISION_STAGE = "final-revision"


def build_memo_stages(
    profile: FirmProfile,
    brief: MemoBrief,
    mode: GenerationMode,
    config: Optional[GenerationConfig] = None
) -> List[StageSpec]:
    """One stage for draft mode, four otherwise."""
    cfg = config or GenerationConfig()
    max_tokens = cfg.memo_max_tokens

    draft = StageSpec(
        number=1,
        name=DRAFT_STAGE,
        system_prompt=MEMO_SYSTEM_PROMPT,
        build_prompt=lambda texts: build_draft_prompt(profile, brief),
        parse=parse_text,
        max_tokens=max_tokens,
    )
    if mode == GenerationMode.DRAFT:
        return [draft]

    return [
        draft,
        StageSpec(
            number=2,
            name=CRITIQUE_STAGE,
            system_prompt=MEMO_CRITIQUE_SYSTEM_PROMPT,
            build_prompt=lambda texts: build_critique_prompt(brief, texts[0]),
            parse=parse_text,
            max_tokens=max_tokens,
        ),
        StageSpec(
            number=3,
            name=PLAN_STAGE,
            system_prompt=MEMO_PLAN_SYSTEM_PROMPT,
            build_prompt=lambda texts: build_plan_prompt(brief, texts[0], texts[1]),
            parse=parse_list,
            max_tokens=max_tokens,
        ),
        StageSpec(
            number=4,
            name=REVISION_STAGE,
            system_prompt=MEMO_REVISION_SYSTEM_PROMPT,
            build_prompt=lambda texts: build_revision_prompt(brief, texts[0], texts[2]),
            parse=parse_final_revision,
            max_tokens=max_tokens,
        ),
    ]
