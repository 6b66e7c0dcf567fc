"""Unit tests for the lead stage pipeline"""

from quote_engine.domain.leads import advance_stage, is_disposition
from quote_engine.domain.models import LeadStage


def test_advance_moves_forward():
    assert advance_stage(LeadStage.NEW, LeadStage.QUOTED) == LeadStage.QUOTED
    assert advance_stage(LeadStage.QUOTED, LeadStage.FUNDED) == LeadStage.FUNDED


def test_advance_never_moves_backwards():
    assert advance_stage(LeadStage.FUNDED, LeadStage.QUOTED) == LeadStage.FUNDED
    assert advance_stage(LeadStage.QUOTED, LeadStage.QUOTED) == LeadStage.QUOTED


def test_dispositions_are_left_alone():
    assert advance_stage(LeadStage.CALLBACK, LeadStage.QUOTED) == LeadStage.CALLBACK
    assert advance_stage(LeadStage.NEW, LeadStage.DNC) == LeadStage.NEW


def test_is_disposition():
    assert is_disposition(LeadStage.NOT_INTERESTED)
    assert not is_disposition(LeadStage.CONTACTED)
