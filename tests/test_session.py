import numpy as np
import pytest

from restore_rush.dirt_field import DirtField
from restore_rush.levels import LEVELS
from restore_rush.pointer import PointerSample
from restore_rush.progress import ProgressStore
from restore_rush.session import (
    RoundSession,
    calculate_coin_reward,
    calculate_combo_bonus_coins,
    calculate_stars,
)
from restore_rush.tools import DirtKind, ToolKind

CELL = (10, 10)


def press(cell=CELL):
    return PointerSample(cell, is_down=True, just_pressed=True)


def hold(cell=CELL):
    return PointerSample(cell, is_down=True, just_pressed=False)


def release(cell=CELL):
    return PointerSample(cell, is_down=False, just_pressed=False)


def tap(session, cell=CELL):
    session.tick(0.0, press(cell))
    session.tick(0.0, release(cell))


@pytest.fixture
def dust_session(progress, make_field):
    return RoundSession(progress, 0, field=make_field(DirtKind.DUST))


def small_disc_field(kind=DirtKind.RUST, radius=3):
    ys, xs = np.mgrid[0:40, 0:40]
    mask = (xs - 20) ** 2 + (ys - 20) ** 2 <= radius * radius
    return DirtField(mask, np.full((40, 40), kind, dtype=np.uint8))


def test_round_starts_from_level_config(progress):
    session = RoundSession(progress, 2, 32, 32)
    level = LEVELS[2]
    assert session.level is level
    assert session.time_remaining == level.duration_seconds
    assert session.target_clean_fraction == pytest.approx(level.target_clean_fraction)
    assert session.selected_tool == ToolKind.BRUSH
    assert (session.stroke_count, session.combo_streak, session.best_combo) == (0, 0, 0)
    assert not session.ended
    assert (session.field.width, session.field.height) == (32, 32)


def test_level_index_is_clamped(progress):
    assert RoundSession(progress, 99, 32, 32).level_index == len(LEVELS) - 1
    assert RoundSession(progress, -4, 32, 32).level_index == 0


def test_brush_upgrade_is_read_at_round_start(progress, make_field):
    progress.set_brush_upgrade_level(4)
    session = RoundSession(progress, 0, field=make_field())
    assert session.power_multiplier == pytest.approx(1.2)


def test_correct_stroke_builds_combo(dust_session):
    tap(dust_session)
    tap(dust_session)
    assert dust_session.stroke_count == 2
    assert dust_session.combo_streak == 2
    assert dust_session.best_combo == 2
    assert dust_session.time_remaining == LEVELS[0].duration_seconds


def test_wrong_tool_stroke_resets_combo_and_costs_time(dust_session):
    tap(dust_session)
    tap(dust_session)
    dust_session.select_tool(ToolKind.SPRAY)
    dust_session.tick(0.0, press())

    assert dust_session.combo_streak == 0
    assert dust_session.best_combo == 2
    assert dust_session.time_remaining == pytest.approx(LEVELS[0].duration_seconds - 0.8)
    assert dust_session.wrong_tool_hint_active
    assert dust_session.wrong_stroke_count == 1


def test_wrong_tool_penalty_never_goes_negative(dust_session):
    dust_session.select_tool(ToolKind.SPRAY)
    dust_session.time_remaining = 0.5
    ended = dust_session.tick(0.0, press())

    assert ended
    assert dust_session.time_remaining == 0.0
    assert dust_session.ended and not dust_session.won


def test_best_combo_keeps_its_peak(dust_session):
    for _ in range(5):
        tap(dust_session)
    dust_session.select_tool(ToolKind.SPRAY)
    tap(dust_session)
    dust_session.select_tool(ToolKind.BRUSH)
    for _ in range(2):
        tap(dust_session)

    assert dust_session.best_combo == 5
    assert dust_session.combo_streak == 2
    assert dust_session.stroke_count == 8


def test_combo_streak_caps_at_twenty(dust_session):
    for _ in range(25):
        tap(dust_session)
    assert dust_session.combo_streak == 20
    assert dust_session.best_combo == 20


def test_holding_counts_one_stroke_but_cleans_every_tick(dust_session):
    dust_session.tick(0.01, press())
    after_first = dust_session.field.dirt_at(*CELL)
    dust_session.tick(0.01, hold())
    dust_session.tick(0.01, hold())

    assert dust_session.stroke_count == 1
    assert dust_session.combo_streak == 1
    assert dust_session.field.dirt_at(*CELL) < after_first < 1.0


def test_down_after_up_starts_a_stroke_without_press_flag(dust_session):
    dust_session.tick(0.0, hold())
    dust_session.tick(0.0, release())
    dust_session.tick(0.0, hold())
    assert dust_session.stroke_count == 2


def test_missing_pointer_resets_edge_tracking(dust_session):
    dust_session.tick(0.0, hold())
    dust_session.tick(0.0, None)
    dust_session.tick(0.0, hold())
    assert dust_session.stroke_count == 2


def test_pointer_off_surface_neither_scores_nor_cleans(dust_session):
    dust_session.tick(0.5, PointerSample(None, True, True))
    assert dust_session.stroke_count == 0
    assert dust_session.clean_fraction == 0.0


def test_stroke_start_over_background_or_clean_cell_is_ignored(progress):
    session = RoundSession(progress, 0, field=small_disc_field())
    session.select_tool(ToolKind.BRUSH)
    session.tick(0.0, press((0, 0)))
    assert session.stroke_count == 0
    assert session.combo_streak == 0
    assert session.time_remaining == LEVELS[0].duration_seconds


def test_wrong_tool_hint_expires(dust_session):
    dust_session.select_tool(ToolKind.SCRAPER)
    dust_session.tick(0.0, press())
    assert dust_session.wrong_tool_hint_active
    dust_session.tick(1.0, release())
    assert dust_session.wrong_tool_hint_active
    dust_session.tick(0.2, release())
    assert not dust_session.wrong_tool_hint_active


def test_describe_cell(progress):
    session = RoundSession(progress, 0, field=small_disc_field(DirtKind.PAINT))
    hint = session.describe_cell((20, 20))
    assert hint.dirt_kind == DirtKind.PAINT
    assert hint.best_tool == ToolKind.SPRAY
    assert hint.multiplier == pytest.approx(0.55)
    assert not hint.correct

    session.cycle_tool()
    assert session.selected_tool == ToolKind.SPRAY
    assert session.describe_cell((20, 20)).correct
    assert session.describe_cell((0, 0)) is None
    assert session.describe_cell(None) is None


def test_win_pays_out_and_unlocks_next_level(progress):
    session = RoundSession(progress, 0, field=small_disc_field(DirtKind.RUST))
    session.select_tool(ToolKind.SCRAPER)
    ended = session.tick(1.0, press((20, 20)))

    assert ended and session.won
    assert session.clean_fraction == 1.0
    result = session.result
    assert result.won
    assert result.stars == 3
    assert result.combo_bonus_coins == 0
    assert result.coin_reward == 40 + 0 + 3 * 20
    assert result.strokes == 1
    assert result.best_combo == 1
    assert result.duration_seconds == pytest.approx(1.0)
    assert progress.coins == 100
    assert progress.unlocked_level == 1
    assert progress.best_stars(0) == 3
    assert progress.last_result is result
    # Win is detected before the countdown runs
    assert session.time_remaining == LEVELS[0].duration_seconds


def test_win_saves_progress_when_store_has_a_path(tmp_path):
    path = tmp_path / "progress.json"
    progress = ProgressStore(path=str(path))
    session = RoundSession(progress, 0, field=small_disc_field(DirtKind.RUST))
    session.select_tool(ToolKind.SCRAPER)
    session.tick(1.0, press((20, 20)))

    assert path.exists()
    assert ProgressStore.load(str(path)).coins == progress.coins


def test_already_clean_field_wins_on_first_tick(progress):
    mask = np.ones((32, 32), dtype=bool)
    field = DirtField(mask, np.zeros((32, 32), dtype=np.uint8), dirt_values=np.zeros((32, 32)))
    session = RoundSession(progress, 0, field=field)
    assert session.tick(100.0)
    assert session.won


def test_timeout_loses_without_reward(dust_session, progress):
    for _ in range(34):
        assert not dust_session.tick(1.0)
    assert dust_session.tick(1.0)

    assert dust_session.ended and not dust_session.won
    assert dust_session.time_remaining == 0.0
    result = dust_session.result
    assert (result.stars, result.coin_reward) == (0, 0)
    assert result.duration_seconds == pytest.approx(35.0)
    assert progress.coins == 0
    assert progress.unlocked_level == 0
    assert progress.last_result is result


def test_round_end_fires_once(progress):
    session = RoundSession(progress, 0, field=small_disc_field(DirtKind.RUST))
    session.select_tool(ToolKind.SCRAPER)
    session.tick(1.0, press((20, 20)))
    result = session.result
    coins = progress.coins

    assert session.tick(1.0, press((20, 20)))
    assert session.result is result
    assert progress.coins == coins


def test_permille_views(dust_session):
    assert dust_session.target_permille == 780
    assert dust_session.clean_permille == 0


def test_reward_example():
    target = 0.82
    stars = calculate_stars(target + 0.10, target)
    bonus = calculate_combo_bonus_coins(6)
    assert stars == 2
    assert bonus == 32
    assert calculate_coin_reward(2, stars, bonus) == 136


@pytest.mark.parametrize(
    "clean, expected",
    [(0.70, 0), (0.80, 1), (0.86, 1), (0.87, 2), (0.88, 2), (0.94, 2), (0.95, 3), (0.96, 3), (1.0, 3)],
)
def test_star_bands(clean, expected):
    assert calculate_stars(clean, 0.80) == expected


def test_combo_bonus_and_coins_edges():
    assert calculate_combo_bonus_coins(0) == 0
    assert calculate_combo_bonus_coins(2) == 0
    assert calculate_combo_bonus_coins(3) == 8
    assert calculate_coin_reward(4, 0, 50) == 0
    assert calculate_coin_reward(4, 1) == 40 + 48 + 20


def test_high_target_caps_at_two_stars():
    assert calculate_stars(1.0, 0.90) == 2
    assert calculate_stars(1.0, 0.85) == 3


def test_win_after_combo_pays_combo_bonus(progress):
    session = RoundSession(progress, 0, field=small_disc_field(DirtKind.DUST))
    for _ in range(3):
        tap(session, (20, 20))
    assert session.combo_streak == 3
    assert not session.ended

    assert session.tick(1.0, press((20, 20)))
    result = session.result
    assert result.won
    assert result.best_combo == 4
    assert result.stars == 3
    assert result.combo_bonus_coins == 16
    assert result.coin_reward == 40 + 0 + 3 * 20 + 16
    assert progress.coins == result.coin_reward
