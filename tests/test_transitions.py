import numpy as np

from barcode_engine.transitions import bar_widths, expand_modules, find_transitions, is_plausible


def test_find_transitions():
	binary = np.array([1, 1, 0, 0, 0, 1, 0, 1, 1], dtype=np.uint8)
	assert find_transitions(binary).tolist() == [2, 5, 6, 7]


def test_find_transitions_short_input():
	assert find_transitions(np.array([1], dtype=np.uint8)).size == 0


def test_bar_widths_normalise_by_narrowest_run():
	# quiet, bar 3px, space 6px, bar 3px, space 9px, bar 4px, quiet
	binary = np.array([1] * 5 + [0] * 3 + [1] * 6 + [0] * 3 + [1] * 9 + [0] * 4 + [1] * 5, dtype=np.uint8)
	widths = bar_widths(binary, find_transitions(binary))
	assert widths.widths == (1, 2, 1, 3, 1)
	assert widths.first_is_bar
	assert widths.module_width == 3.0


def test_bar_widths_round_half_up():
	# 2px narrowest; 3px rounds to 2 modules, 5px rounds to 3 modules
	binary = np.array([1] * 2 + [0] * 2 + [1] * 3 + [0] * 5 + [1] * 2, dtype=np.uint8)
	widths = bar_widths(binary, find_transitions(binary))
	assert widths.widths == (1, 2, 3)


def test_bar_widths_first_run_colour():
	binary = np.array([0] * 4 + [1] * 2 + [0] * 2 + [1] * 4, dtype=np.uint8)
	widths = bar_widths(binary, find_transitions(binary))
	assert not widths.first_is_bar


def test_bar_widths_needs_two_transitions():
	binary = np.array([1, 1, 0, 0], dtype=np.uint8)
	assert bar_widths(binary, find_transitions(binary)).widths == ()


def test_expand_modules():
	assert expand_modules([1, 2, 1], first_is_bar=True) == [1, 0, 0, 1]
	assert expand_modules([2, 1], first_is_bar=False) == [0, 0, 1]


def test_is_plausible_band():
	assert not is_plausible(19)
	assert is_plausible(20)
	assert is_plausible(300)
	assert not is_plausible(301)
