from relay.services.escalation_service import (
    build_completion_result,
    extract_escalation_note,
    format_admin_notification,
    strip_escalation_note,
)


class TestExtractEscalationNote:
    def test_returns_text_after_marker(self):
        note = extract_escalation_note("answer text [NOTIFY_ADMIN]: escalate this")
        assert note == "escalate this"

    def test_none_without_marker(self):
        assert extract_escalation_note("plain answer") is None

    def test_truncates_to_max_chars(self):
        note = extract_escalation_note("x [NOTIFY_ADMIN]: " + "a" * 1500, max_chars=1000)
        assert len(note) == 1000

    def test_only_first_marker_splits(self):
        note = extract_escalation_note("a [NOTIFY_ADMIN]: one [NOTIFY_ADMIN]: two")
        assert note == "one [NOTIFY_ADMIN]: two"

    def test_marker_with_nothing_after_gives_empty_note(self):
        assert extract_escalation_note("answer [NOTIFY_ADMIN]:") == ""

    def test_custom_marker(self):
        assert extract_escalation_note("ok <<HUMAN>> call me", marker="<<HUMAN>>") == "call me"


class TestStripEscalationNote:
    def test_removes_marker_and_note(self):
        assert strip_escalation_note("answer text [NOTIFY_ADMIN]: escalate this") == "answer text"

    def test_no_marker_unchanged(self):
        assert strip_escalation_note("plain answer") == "plain answer"


class TestBuildCompletionResult:
    def test_keeps_full_answer(self):
        result = build_completion_result("answer [NOTIFY_ADMIN]: call back")
        assert result.answer == "answer [NOTIFY_ADMIN]: call back"
        assert result.escalation_note == "call back"

    def test_no_note(self):
        result = build_completion_result("answer")
        assert result.escalation_note is None


class TestFormatAdminNotification:
    def test_contains_note(self):
        text = format_admin_notification("escalate this")
        assert text.endswith("\nescalate this")
        assert text.startswith("🔔")

    def test_mentions_sender(self):
        text = format_admin_notification("call me", sender="whatsapp:+15551234567")
        assert "whatsapp:+15551234567" in text
