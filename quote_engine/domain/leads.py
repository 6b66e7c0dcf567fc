"""Lead stage pipeline"""

from quote_engine.domain.models import LeadStage

PIPELINE = (LeadStage.NEW, LeadStage.CONTACTED, LeadStage.QUOTED, LeadStage.FUNDED)


def is_disposition(stage: LeadStage) -> bool:
    return stage not in PIPELINE


def advance_stage(current: LeadStage, target: LeadStage) -> LeadStage:
    """Move forward in the pipeline only; dispositions are never overridden automatically"""
    if is_disposition(current) or is_disposition(target):
        return current
    if PIPELINE.index(target) > PIPELINE.index(current):
        return target
    return current
