from groupbot.core.router import ReplyRouter
from groupbot.core.types import CustomIntent, ImageReply, QuickReplyPrompt, SpeechReply


def test_actions_follow_image_speech_quick_reply_order():
    directives = [
        QuickReplyPrompt(title="Pick one", options=["Math", "English"]),
        SpeechReply(text=""),
        ImageReply(image_url="https://img/1.png"),
        SpeechReply(text="Hello there"),
        SpeechReply(text="Ignored"),
        ImageReply(image_url="https://img/2.png"),
    ]
    routed = ReplyRouter().route(directives)

    assert [a.kind for a in routed.actions] == ["attachment", "attachment", "text", "quick_reply"]
    assert [a.url for a in routed.actions[:2]] == ["https://img/1.png", "https://img/2.png"]
    assert routed.actions[2].text == "Hello there"
    assert routed.actions[3].title == "Pick one"
    assert routed.actions[3].options == ["Math", "English"]
    assert routed.custom is None


def test_single_image_two_speeches_and_prompt():
    routed = ReplyRouter().route(
        [
            SpeechReply(text="first"),
            SpeechReply(text="second"),
            QuickReplyPrompt(title="Grade?", options=["1", "2"]),
            ImageReply(image_url="https://img/x.png"),
        ]
    )
    assert [a.kind for a in routed.actions] == ["attachment", "text", "quick_reply"]
    assert routed.actions[1].text == "first"


def test_only_first_custom_intent_is_returned():
    routed = ReplyRouter().route(
        [
            CustomIntent(intent_name="find_groups", payload={"intent": "find_groups"}),
            CustomIntent(intent_name="other"),
        ]
    )
    assert routed.actions == []
    assert routed.custom.intent_name == "find_groups"


def test_every_quick_reply_prompt_is_sent_in_order():
    routed = ReplyRouter().route(
        [QuickReplyPrompt(title="a"), QuickReplyPrompt(title="b"), SpeechReply(text="   ")]
    )
    # whitespace is still non-empty text
    assert [getattr(a, "title", getattr(a, "text", None)) for a in routed.actions] == ["   ", "a", "b"]


def test_no_directives_no_actions():
    routed = ReplyRouter().route([])
    assert routed.actions == [] and routed.custom is None
