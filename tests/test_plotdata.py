import math

from trackplot.plotdata import (
    MonitoredValue,
    MoveDataResult,
    PlotData,
    PlotDataMap,
    PlotGroup,
    Point,
    move_data,
)


def _series(name, xs, ys=None):
    plot = PlotData(name)
    ys = xs if ys is None else ys
    for x, y in zip(xs, ys):
        plot.push_back(Point(x, y))
    return plot


def test_push_back_keeps_order():
    plot = _series("a", [0.0, 2.0, 1.0])
    xs = [p.x for p in plot]
    assert xs == sorted([0.0, 2.0, 1.0])


def test_push_back_skips_nan_x():
    plot = _series("a", [0.0, math.nan, 1.0])
    assert len(plot) == 2


def test_maximum_range_trims_old_points():
    plot = PlotData("a")
    plot.maximum_range_x = 2.0
    for x in range(10):
        plot.push_back(Point(float(x), 0.0))
    assert all(plot.back.x - p.x <= plot.maximum_range_x for p in plot)
    assert plot.back.x == 9.0


def test_clear_keeps_attributes():
    plot = _series("a", [1.0, 2.0])
    plot.set_attribute("color", "red")
    plot.clear()
    assert len(plot) == 0
    assert plot.attribute("color") == "red"
    assert plot.attribute("missing") is None


def test_index_from_x():
    plot = _series("a", [0.0, 1.0, 2.0])
    assert PlotData("empty").index_from_x(3.0) is None
    assert plot.index_from_x(1.2) == 1
    assert plot.index_from_x(1.8) == 2
    assert plot.index_from_x(-5.0) == 0
    assert plot.index_from_x(10.0) == len(plot) - 1


def test_add_numeric_returns_existing():
    data = PlotDataMap()
    first = data.add_numeric("x")
    assert data.add_numeric("x") is first
    assert data.add_string_series("s") is data.strings["s"]


def test_group_identity_and_attributes():
    data = PlotDataMap()
    group = data.get_or_create_group("g")
    assert data.get_or_create_group("g") is group
    group.set_attribute("text_color", "blue")
    assert group.attribute("text_color") == "blue"
    data.clear()
    assert data.groups == {} and data.numeric == {}


def test_move_data_new_curve():
    source = PlotDataMap()
    source.numeric["a"] = _series("a", [0.0, 1.0, 2.0], [5.0, 6.0, 7.0])
    expected = list(source.numeric["a"])
    destination = PlotDataMap()

    result = move_data(source, destination, False)

    assert result.added_curves == ["a"]
    assert result.curves_updated
    assert result.data_pushed
    assert list(destination.numeric["a"]) == expected
    assert len(source.numeric["a"]) == 0


def test_move_data_without_changes():
    source = PlotDataMap()
    source.add_numeric("a")
    destination = PlotDataMap()
    move_data(source, destination, False)
    result = move_data(source, destination, False)
    assert result == MoveDataResult()


def test_move_data_appends_or_replaces():
    source = PlotDataMap()
    destination = PlotDataMap()
    destination.numeric["a"] = _series("a", [0.0, 1.0])
    source.numeric["a"] = _series("a", [2.0, 3.0])
    move_data(source, destination, False)
    assert [p.x for p in destination.numeric["a"]] == [0.0, 1.0, 2.0, 3.0]

    source.numeric["a"].push_back(Point(4.0, 4.0))
    move_data(source, destination, True)
    assert [p.x for p in destination.numeric["a"]] == [4.0]


def test_move_data_copies_attributes_and_groups():
    source = PlotDataMap()
    group = source.get_or_create_group("tc")
    group.set_attribute("text_color", "blue")
    plot = source.add_numeric("tc/red", group)
    plot.set_attribute("text_color", "red")
    plot.maximum_range_x = 5.0
    destination = PlotDataMap()

    result = move_data(source, destination, False)

    moved = destination.numeric["tc/red"]
    assert result.curves_updated
    assert not result.data_pushed
    assert moved.attribute("text_color") == "red"
    assert moved.group is destination.groups["tc"]
    assert moved.group.attribute("text_color") == "blue"
    assert moved.maximum_range_x == plot.maximum_range_x


def test_move_data_strings():
    source = PlotDataMap()
    source.add_string_series("color").push_back(Point(1.0, "RED"))
    destination = PlotDataMap()
    result = move_data(source, destination, False)
    assert result.added_curves == ["color"]
    assert destination.strings["color"][0].y == "RED"


def test_group_repr_and_plot_name():
    group = PlotGroup("g")
    plot = PlotData("p", group)
    assert plot.group.name == group.name
    assert "g" in repr(group)


def test_monitored_value_notifies_only_on_change():
    seen = []
    value = MonitoredValue()
    value.subscribe(seen.append)
    value.set(0.0)
    assert seen == []
    value.set(2.5)
    value.set(2.5)
    assert seen == [2.5]
    assert value.value == 2.5