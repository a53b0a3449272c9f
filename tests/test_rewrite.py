import tempfile
import unittest
from pathlib import Path
from typing import Dict, List, Optional

from emotebot.catalog import EmoteCatalog
from emotebot.config import UserIdentity
from emotebot.models import EditOriginal, Emote, Message, RewritePlan, SendAttachment, SendText
from emotebot.remote import RemoteEmoteError, RemoteEmoteResolver
from emotebot.rewrite import LOCAL, REMOTE, MessageRewriter, build_rewrite_plan, tokenize
from emotebot.spoiler import SpoilerRegistry
from emotebot.text_emotes import TEXT_EMOTES

LENNY = TEXT_EMOTES[0][1]
SHRUG = TEXT_EMOTES[1][1]
WAVE = Emote(name="wave", payload=b"wave", file_name="wave.png")
DANCE = Emote(name="dance", payload=b"dance", file_name="dance.gif")


class _FakeResolver(RemoteEmoteResolver):
    def __init__(self, emotes: Dict[str, Emote], failing: Optional[List[str]] = None):
        super().__init__(Path(tempfile.gettempdir()) / "emotebot-no-cache", {})
        self._emotes = emotes
        self._failing = set(failing or [])
        self.calls: List[str] = []

    async def resolve(self, name: str) -> Optional[Emote]:
        self.calls.append(name)
        if name.lower() in self._failing:
            raise RemoteEmoteError(f"network down for {name}")
        return self._emotes.get(name.lower())


def _catalog() -> EmoteCatalog:
    return EmoteCatalog([WAVE, DANCE])


class TokenizeTests(unittest.TestCase):
    def test_segments_surround_captures(self) -> None:
        segments, captures = tokenize("hello :wave bye", ":", "")
        self.assertEqual(segments, ["hello", " bye"])
        self.assertEqual(len(captures), 1)
        self.assertEqual((captures[0].kind, captures[0].name, captures[0].whitespace), (LOCAL, "wave", " "))

    def test_mid_word_prefix_never_matches(self) -> None:
        segments, captures = tokenize("mail:wave and a:b", ":", "")
        self.assertEqual(captures, [])
        self.assertEqual(segments, ["mail:wave and a:b"])

    def test_start_of_text_matches(self) -> None:
        segments, captures = tokenize(":wave!", ":", "")
        self.assertEqual(segments, ["", "!"])
        self.assertEqual(captures[0].whitespace, "")

    def test_mixed_local_and_remote_keep_order(self) -> None:
        _, captures = tokenize(":a ::b :c\n::d", ":", "::")
        self.assertEqual([(c.kind, c.name) for c in captures], [(LOCAL, "a"), (REMOTE, "b"), (LOCAL, "c"), (REMOTE, "d")])
        self.assertEqual(captures[3].whitespace, "\n")

    def test_unicode_names_and_multibyte_prefix(self) -> None:
        segments, captures = tokenize("héllo ✨café ✨", "✨", "")
        self.assertEqual([c.name for c in captures], ["café"])
        self.assertEqual(segments, ["héllo", " ✨"])

    def test_empty_prefixes_never_match(self) -> None:
        segments, captures = tokenize("hello :wave", "", "")
        self.assertEqual(captures, [])
        self.assertEqual(segments, ["hello :wave"])


class BuildPlanTests(unittest.IsolatedAsyncioTestCase):
    async def _plan(self, content: str, **kwargs) -> Optional[RewritePlan]:
        kwargs.setdefault("local_prefix", ":")
        kwargs.setdefault("remote_prefix", "")
        kwargs.setdefault("catalog", _catalog())
        return await build_rewrite_plan(content, **kwargs)

    async def test_no_prefix_means_no_plan(self) -> None:
        for content in ("", "hello world", "wave", "a;b"):
            self.assertIsNone(await self._plan(content))

    async def test_both_prefixes_empty_means_no_plan(self) -> None:
        self.assertIsNone(await self._plan(":wave", local_prefix="", remote_prefix=""))

    async def test_only_unknown_emote_means_no_plan(self) -> None:
        self.assertIsNone(await self._plan(":unknown"))
        self.assertIsNone(await self._plan("hi :nope and :neither"))

    async def test_leading_text_edits_original(self) -> None:
        plan = await self._plan("hello :wave bye")
        self.assertEqual(plan.actions, [EditOriginal("hello "), SendAttachment("", WAVE), SendText("bye")])
        self.assertFalse(plan.delete_original)

    async def test_lone_emote_deletes_original(self) -> None:
        plan = await self._plan(":wave")
        self.assertEqual(plan.actions, [SendAttachment("", WAVE)])
        self.assertTrue(plan.delete_original)

    async def test_lone_emote_with_attachments_edits_instead_of_deleting(self) -> None:
        plan = await self._plan(":wave", has_attachments=True)
        self.assertEqual(plan.actions, [SendAttachment("", WAVE), EditOriginal("")])
        self.assertFalse(plan.delete_original)

    async def test_later_emotes_carry_preceding_text(self) -> None:
        plan = await self._plan(":wave then :dance end")
        self.assertEqual(
            plan.actions,
            [SendAttachment("", WAVE), SendAttachment(" then ", DANCE), SendText("end")],
        )
        self.assertTrue(plan.delete_original)

    async def test_unresolved_capture_is_restored_verbatim(self) -> None:
        plan = await self._plan("a :nope b :wave c")
        self.assertEqual(
            plan.actions,
            [EditOriginal("a :nope b "), SendAttachment("", WAVE), SendText("c")],
        )

    async def test_consecutive_emotes_get_empty_captions(self) -> None:
        plan = await self._plan(":wave :dance")
        self.assertEqual(plan.actions, [SendAttachment("", WAVE), SendAttachment("", DANCE)])
        self.assertTrue(plan.delete_original)

    async def test_case_insensitive_local_lookup(self) -> None:
        plan = await self._plan(":WaVe")
        self.assertEqual(plan.actions, [SendAttachment("", WAVE)])

    async def test_remote_prefix_uses_resolver(self) -> None:
        kappa = Emote(name="kappa", payload=b"k", file_name="kappa.png")
        resolver = _FakeResolver({"kappa": kappa})
        plan = await self._plan("gg ::Kappa :wave", remote_prefix="::", resolver=resolver)
        self.assertEqual(
            plan.actions,
            [EditOriginal("gg "), SendAttachment("", kappa), SendAttachment("", WAVE)],
        )
        self.assertEqual(resolver.calls, ["Kappa"])

    async def test_remote_error_downgrades_to_unresolved(self) -> None:
        resolver = _FakeResolver({}, failing=["lul"])
        with self.assertLogs("emotebot.rewrite", level="WARNING"):
            plan = await self._plan("x ::LUL :wave y", remote_prefix="::", resolver=resolver)
        self.assertEqual(
            plan.actions,
            [EditOriginal("x ::LUL "), SendAttachment("", WAVE), SendText("y")],
        )

    async def test_remote_error_on_only_capture_means_no_plan(self) -> None:
        resolver = _FakeResolver({}, failing=["lul"])
        with self.assertLogs("emotebot.rewrite", level="WARNING"):
            self.assertIsNone(await self._plan("::LUL", local_prefix="", remote_prefix="::", resolver=resolver))

    async def test_spoiler_mode_wraps_redistributed_text(self) -> None:
        plan = await self._plan("hello :wave then :dance bye", spoiler=True)
        self.assertEqual(
            plan.actions,
            [
                EditOriginal("|| hello ||"),
                SendAttachment("", WAVE),
                SendAttachment("|| then ||", DANCE),
                SendText("|| bye ||"),
            ],
        )

    async def test_spoiler_mode_skips_content_free_chunks(self) -> None:
        plan = await self._plan(":wave  ", spoiler=True)
        self.assertEqual(plan.actions, [SendAttachment("", WAVE)])
        plan = await self._plan("|| || :wave ||||", spoiler=True)
        self.assertEqual(plan.actions, [SendAttachment("", WAVE)])
        self.assertTrue(plan.delete_original)

    async def test_marker_text_is_kept_outside_spoiler_mode(self) -> None:
        plan = await self._plan("|| :wave")
        self.assertEqual(plan.actions, [EditOriginal("|| "), SendAttachment("", WAVE)])
        self.assertFalse(plan.delete_original)

        plan = await self._plan(":wave ||")
        self.assertEqual(plan.actions, [SendAttachment("", WAVE), SendText("||")])
        self.assertTrue(plan.delete_original)


class MessageRewriterTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.identity = UserIdentity(
            discord_id=1,
            token="token",
            command_prefix=";;",
            emote_prefix=":",
            remote_emote_prefix="",
            text_emote_prefix=";",
        )
        self.spoilers = SpoilerRegistry()
        self.rewriter = MessageRewriter(_catalog(), None, self.spoilers)

    async def test_text_emote_only_produces_single_edit(self) -> None:
        plan = await self.rewriter.rewrite(Message(content="ok ;lenny", channel_id=5), self.identity)
        self.assertEqual(plan.actions, [EditOriginal(f"ok {LENNY}")])
        self.assertFalse(plan.delete_original)

    async def test_text_edit_precedes_attachment_plan(self) -> None:
        plan = await self.rewriter.rewrite(Message(content=";shrug :wave", channel_id=5), self.identity)
        self.assertEqual(
            plan.actions,
            [EditOriginal(f"{SHRUG} :wave"), EditOriginal(f"{SHRUG} "), SendAttachment("", WAVE)],
        )

    async def test_spoiler_state_is_read_per_channel(self) -> None:
        self.spoilers.toggle(9)
        plan = await self.rewriter.rewrite(Message(content="hi :wave", channel_id=9), self.identity)
        self.assertEqual(plan.actions[0], EditOriginal("|| hi ||"))
        plan = await self.rewriter.rewrite(Message(content="hi :wave", channel_id=8), self.identity)
        self.assertEqual(plan.actions[0], EditOriginal("hi "))

    async def test_plain_message_produces_nothing(self) -> None:
        self.assertIsNone(await self.rewriter.rewrite(Message(content="just text", channel_id=5), self.identity))


if __name__ == "__main__":
    unittest.main()
