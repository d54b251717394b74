"""Tests for core/transcript.py: interim/final reconciliation and text queries."""

import dataclasses
import random

import pytest

from rapport.core.models import TranscriptSegment
from rapport.core.transcript import TranscriptReconciler


def seg(text, is_final=True, ts=0.0, name="Alice", speaker_id="a"):
    return TranscriptSegment(
        speaker_id=speaker_id, speaker_name=name, text=text,
        timestamp_ms=ts, is_final=is_final,
    )


@pytest.fixture
def reconciler(clock):
    return TranscriptReconciler(clock=clock)


class TestReconciliation:
    def test_interim_then_final_yields_one_line(self, reconciler):
        """Interim guesses are replaced; only the final text shows up."""
        reconciler.ingest(seg("I l", is_final=False))
        reconciler.ingest(seg("I love", is_final=False))
        reconciler.ingest(seg("I love hiking", is_final=True))
        assert reconciler.full_transcript() == "Alice: I love hiking"
        assert len(reconciler) == 1

    def test_interim_replaces_trailing_interim(self, reconciler):
        reconciler.ingest(seg("I l", is_final=False))
        reconciler.ingest(seg("I love", is_final=False))
        assert len(reconciler) == 1
        assert reconciler.segments[-1].text == "I love"

    def test_first_interim_is_appended(self, reconciler):
        reconciler.ingest(seg("Hello there", is_final=True))
        reconciler.ingest(seg("How", is_final=False))
        assert len(reconciler) == 2
        assert not reconciler.segments[-1].is_final

    def test_duplicate_final_is_dropped(self, reconciler):
        """Providers sometimes emit the same final result twice."""
        reconciler.ingest(seg("We went to Lisbon"))
        reconciler.ingest(seg("We went to Lisbon"))
        assert reconciler.full_transcript() == "Alice: We went to Lisbon"

    def test_same_text_after_different_final_is_kept(self, reconciler):
        reconciler.ingest(seg("yes"))
        reconciler.ingest(seg("really?", name="Bob", speaker_id="b"))
        reconciler.ingest(seg("yes"))
        assert reconciler.full_transcript().count("yes") == 2

    def test_interim_segments_are_not_in_text(self, reconciler):
        reconciler.ingest(seg("Done talking"))
        reconciler.ingest(seg("And another", is_final=False))
        assert reconciler.full_transcript() == "Alice: Done talking"

    def test_lines_keep_arrival_order_and_speaker(self, reconciler):
        reconciler.ingest(seg("Hi", name="Alice"))
        reconciler.ingest(seg("Hey you", name="Bob", speaker_id="b"))
        assert reconciler.full_transcript() == "Alice: Hi\nBob: Hey you"

    def test_last_activity_tracks_interim_segments(self, reconciler):
        reconciler.ingest(seg("Hi", ts=100.0))
        reconciler.ingest(seg("and", is_final=False, ts=250.0))
        assert reconciler.last_activity_ms == 250.0

    def test_ingested_segments_are_immutable(self, reconciler):
        reconciler.ingest(seg("We went to Lisbon"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            reconciler.segments[0].text = "We went to Porto"
        assert reconciler.full_transcript() == "Alice: We went to Lisbon"

    def test_clear(self, reconciler):
        reconciler.ingest(seg("Hi"))
        reconciler.clear()
        assert len(reconciler) == 0
        assert reconciler.full_transcript() == ""
        reconciler.ingest(seg("Hi"))
        assert len(reconciler) == 1

    def test_random_streams_keep_invariants(self, reconciler):
        """No two consecutive interim entries; no consecutive identical finals."""
        rng = random.Random(7)
        words = ["so", "so anyway", "right", "right then", "ok"]
        for i in range(300):
            reconciler.ingest(seg(rng.choice(words), is_final=rng.random() < 0.4, ts=float(i)))

        segments = reconciler.segments
        for prev, cur in zip(segments, segments[1:]):
            assert prev.is_final or cur.is_final
        non_final = [i for i, s in enumerate(segments) if not s.is_final]
        assert all(i == len(segments) - 1 for i in non_final)
        finals = [s.text for s in segments if s.is_final]
        for prev, cur in zip(finals, finals[1:]):
            assert prev != cur


class TestRecentTranscript:
    def test_window_filters_old_segments(self, reconciler, clock):
        reconciler.ingest(seg("Old news", ts=clock.now - 10 * 60_000))
        reconciler.ingest(seg("Fresh news", ts=clock.now - 60_000))
        assert reconciler.recent_transcript(5) == "Alice: Fresh news"

    def test_explicit_now(self, reconciler):
        reconciler.ingest(seg("At one minute", ts=60_000))
        assert reconciler.recent_transcript(1, now_ms=120_000) == "Alice: At one minute"
        assert reconciler.recent_transcript(1, now_ms=120_001) == ""

    def test_shrinking_window_never_grows_result(self, reconciler, clock):
        for minutes_ago in (12, 8, 4, 2, 1, 0.5):
            reconciler.ingest(seg(f"{minutes_ago} min ago", ts=clock.now - minutes_ago * 60_000))

        full_lines = reconciler.full_transcript().split("\n")
        previous = None
        for window in (20, 10, 5, 3, 1, 0.25):
            lines = [l for l in reconciler.recent_transcript(window).split("\n") if l]
            # suffix of the full transcript, in order
            assert lines == full_lines[len(full_lines) - len(lines):]
            if previous is not None:
                assert len(lines) <= len(previous)
            previous = lines
