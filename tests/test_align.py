from interview_console.contracts.models import AnalysisPrompt
from interview_console.services.align import align, align_prompts
from interview_console.services.partition import GuideQuestion


def test_index_match_beats_position():
    blocks = align(["Q1", "Q2"], [{"index": 1, "answerSummary": "A2"}])
    assert [b.answer for b in blocks] == ["", "A2"]
    assert [b.question for b in blocks] == ["Q1", "Q2"]


def test_positional_fallback_without_indices():
    blocks = align(["Q1", "Q2"], [{"answerSummary": "A1"}, {"answerSummary": "A2"}])
    assert [b.answer for b in blocks] == ["A1", "A2"]


def test_positional_fallback_skips_prompt_like_entries():
    blocks = align(["Q1"], [{"response": "I grow wheat"}])
    assert blocks[0].answer == ""


def test_original_positions_are_used_for_index_matching():
    # guide line 0 was a prompt, so the first displayed question sits at position 1
    questions = [GuideQuestion(1, "Q1"), GuideQuestion(2, "Q2")]
    result = [{"index": 2, "answerSummary": "A2"}, {"index": 1, "answerSummary": "A1"}]
    blocks = align(questions, result)
    assert [(b.question, b.answer, b.index) for b in blocks] == [("Q1", "A1", 1), ("Q2", "A2", 2)]


def test_mismatched_lengths_and_junk_never_raise():
    blocks = align(["Q1", "Q2", "Q3"], ["junk", None, {"index": 0, "answerSummary": "A1"}])
    assert [b.answer for b in blocks] == ["A1", "", ""]
    assert align([], [{"index": 0, "answerSummary": "A"}]) == []


def test_quotes_and_reasoning_pass_through():
    entry = {
        "index": 0,
        "answerSummary": "Two acres",
        "verbatimQuotes": [{"quote": "do acre", "note": "Hindi"}, "bas itna", {"quote": "x", "note": ""}, 5],
        "reasoning": "Stated directly",
    }
    block = align(["Land?"], [entry])[0]
    assert [(q.quote, q.note) for q in block.quotes] == [("do acre", "Hindi"), ("bas itna", None), ("x", None)]
    assert block.reasoning == "Stated directly"


def test_align_prompts_by_index_then_position():
    analysis = [AnalysisPrompt(index=1, promptText="B", response="rb"), AnalysisPrompt(promptText="?", response="r0")]
    blocks = align_prompts(["A", "B"], analysis)
    assert [(p.index, p.prompt_text, p.response) for p in blocks] == [(0, "A", ""), (1, "B", "rb")]


def test_align_prompts_without_guide_prompts():
    analysis = [AnalysisPrompt(index=0, promptText="Tell me", response="ok")]
    blocks = align_prompts([], analysis)
    assert [(p.index, p.prompt_text, p.response) for p in blocks] == [(0, "Tell me", "ok")]


def test_malformed_entries_keep_later_positions():
    blocks = align(["Q1", "Q2"], [None, {"answerSummary": "A2"}])
    assert [b.answer for b in blocks] == ["", "A2"]
    blocks = align(["Q1", "Q2", "Q3"], [{"answerSummary": "A1"}, "junk", {"answerSummary": "A3"}])
    assert [b.answer for b in blocks] == ["A1", "", "A3"]


def test_off_type_fields_keep_the_entry():
    blocks = align(["Q1"], [{"index": 0, "answerSummary": "A1", "verbatimQuotes": "just one quote"}])
    assert blocks[0].answer == "A1"
    assert [q.quote for q in blocks[0].quotes] == ["just one quote"]

    blocks = align(["Q1", "Q2"], [{"index": 0, "answerSummary": 3}, {"index": 1, "verbatimQuotes": {"quote": "q"}}])
    assert blocks[0].answer == "3"
    assert [q.quote for q in blocks[1].quotes] == ["q"]


def test_align_prompts_keeps_positions_of_malformed_prompts():
    blocks = align_prompts(["A", "B"], [None, AnalysisPrompt(promptText="?", response="rb")])
    assert [p.response for p in blocks] == ["", "rb"]
