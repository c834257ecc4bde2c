from interview_console.contracts.models import (
    AnalysisQuestionEntry, Interview, InterviewStatus, ResolvedAnalysis, UploadMeta,
)


def test_status_from_model():
    assert InterviewStatus.from_model(None) == InterviewStatus.draft()
    assert InterviewStatus.from_model("  ").label == "Draft"

    generated = InterviewStatus.from_model("gpt-5.1")
    assert generated.kind == "generated"
    assert generated.label == "gpt-5.1"
    assert not generated.human_approved

    edited = InterviewStatus.from_model("gpt-5.1-HUMAN-EDIT")
    assert edited.kind == "human_edited"
    assert edited.human_approved


def test_models_accept_aliases_and_field_names():
    meta = UploadMeta.model_validate({"farmerName": "Ramesh", "village": "Dewas", "unknown": 1})
    assert meta.farmer_name == "Ramesh"
    assert UploadMeta(farmer_name="Sita", village="V").model_dump(by_alias=True, exclude_none=True) == {
        "farmerName": "Sita", "village": "V",
    }
    interview = Interview(id="i1", guide_id="g1")
    assert interview.status.kind == "draft"
    assert interview.answers == []


def test_question_entry_keeps_unknown_fields():
    entry = AnalysisQuestionEntry.model_validate({"index": 0, "answerSummary": "A", "confidence": 0.9})
    assert entry.model_extra == {"confidence": 0.9}
    assert AnalysisQuestionEntry.model_validate({"response": "r"}).looks_like_prompt()
    assert not AnalysisQuestionEntry.model_validate({"response": "r", "questionText": "Q"}).looks_like_prompt()


def test_resolved_analysis_result_shapes():
    nested = ResolvedAnalysis(audioId="a", questionnaireId="g", version=1,
                              raw={"payload": {"result": {"questions": [{"index": 0}, "x"]}}})
    assert [q.index if q else None for q in nested.result_questions] == [0, None]
    flat = ResolvedAnalysis(audioId="a", questionnaireId="g", version=1, raw={"result": {"prompts": [
        {"index": 0, "promptText": "P", "response": "R"},
    ]}})
    assert flat.result_prompts[0].response == "R"
    assert ResolvedAnalysis(audioId="a", questionnaireId="g", version=1).result == {}


def test_question_entry_coerces_off_type_fields():
    entry = AnalysisQuestionEntry.model_validate({
        "index": "1", "answerSummary": 42, "verbatimQuotes": "just one quote", "reasoning": ["a", "b"],
    })
    assert entry.index == 1
    assert entry.answer_summary == "42"
    assert entry.verbatim_quotes == "just one quote"
    assert entry.reasoning == '["a", "b"]'
    assert AnalysisQuestionEntry.model_validate({"index": True}).index is None
