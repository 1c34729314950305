# trackplot

Building blocks for time-series data: containers for numeric and string
series, transforms and filters that turn one series into another,
user-defined custom functions, and loaders for CSV files and ULog flight
logs. It needs nothing outside the Python standard library.

## Installation

```
pip install .
```

For the tests, install the `test` extra (`pip install .[test]`) and run
`pytest`.

## Modules

- `trackplot.plotdata`
  - `Point`: one sample with a time `x` and a value `y`.
  - `PlotData`: a series kept ordered by `x`. It has `push_back`, `clear`,
    attributes, an optional `PlotGroup`, and `index_from_x`, which gives the
    index of the nearest sample. It also has `maximum_range_x`; when this is
    finite, old samples outside that window are dropped.
  - `PlotDataMap`: holds the `numeric`, `strings` and `user_defined` series
    and the named groups. It has `add_numeric`, `add_string_series`,
    `get_or_create_group` and `clear`.
  - `move_data(source, destination, remove_older)`: moves every sample from
    one map into another and empties the source series. It returns a
    `MoveDataResult` with `added_curves`, `curves_updated` and `data_pushed`.
  - `MonitoredValue`: a number that calls its subscribers when it changes.
- `trackplot.transforms`
  - `TimeSeriesTransform`: the base class. Call `set_source(series)`, then
    `calculate()`. Each call handles only the source samples it has not seen
    yet, and returns the `destination` series.
  - `FirstDerivative` and `IntegralTransform` (trapezoidal rule). Each uses
    either the real sample spacing or a fixed `custom_dt`. `compute_dt()`
    estimates `custom_dt` from the source.
  - `ScaleTransform`: applies a time offset, a value scale and a value
    offset. `use_deg_to_rad()` and `use_rad_to_deg()` set the scale for
    angle units.
  - `estimate_sample_period(points)`: the mean sample interval. With more
    than ten points, the shortest and the longest fifth of the intervals are
    left out.
- `trackplot.filters`
  - `MovingAverageFilter(samples, compensate_offset)`: the average of the
    last `samples` values.
  - `OutlierRemovalFilter(factor)`: drops isolated spikes. Its output is one
    sample behind its input.
  - Every transform and filter saves its options into an `xml.etree`
    element with `xml_save_state(parent)`, and restores them with
    `xml_load_state(parent)`.
- `trackplot.custom_function`
  - `SnippetData` and its XML helpers: `snippet_from_xml`,
    `snippets_from_xml`, `snippet_to_xml`, `snippets_to_xml`,
    `export_snippets` and `calc_signature`.
  - `CustomFunction`: the base class.
  - `CallableCustomFunction(snippet, function)`: computes a series from a
    linked source series and up to eight extra channels. It calls a Python
    callable as `function(time, value, v1, ..., vN)`. The callable returns a
    number, a `(time, value)` tuple, or a list of `(time, value)` pairs.
- `trackplot.csv_loader`
  - `CsvLoader`: reads a CSV file whose first line names the columns. Each
    column becomes a numeric series. The time axis is a named column or the
    row number. A time column that is not numeric is parsed with a Qt-style
    format such as `yyyy-MM-dd hh:mm:ss`; `qt_format_to_strptime` does the
    conversion.
  - A successful read returns a `CsvLoadResult`. Errors raise `CsvError`:
    a wrong column count, an unparseable timestamp, or time going backwards.
- `trackplot.sample_stream`
  - `SampleStreamer(seed, period)`: a context manager. It pushes synthetic
    sine-wave samples into its `data_map` from a background thread, under
    `lock`.
- `trackplot.ulog_format`
  - The ULog message and field types (`MessageType`, `FormatType`, `Field`,
    `Format`, `Parameter`, `MessageLog`).
  - `parse_format(text)`: parses a FORMAT definition.
- `trackplot.ulog_parser`
  - `ULogParser(data)`: parses a ULog file held in memory. The results are
    in `timeseries`, `parameters`, `info`, `logs` and `formats`.
  - `load_ulog(path, plot_data)`: fills a `PlotDataMap`, with time in
    seconds.
  - `log_level_name(level)`: the name of a log level.
  - Unreadable files raise `ULogError`.

## Examples

Take the derivative of a series:

```python
from trackplot.plotdata import PlotData, Point
from trackplot.transforms import FirstDerivative

series = PlotData("speed", None)
for t, v in [(0.0, 0.0), (1.0, 2.0), (2.0, 6.0)]:
    series.push_back(Point(t, v))

derivative = FirstDerivative(0.0, False)
derivative.set_source(series)
print([(p.x, p.y) for p in derivative.calculate()])  # [(0.0, 2.0), (1.0, 4.0)]
```

Load a CSV file, using its `time` column as the time axis:

```python
from trackplot.csv_loader import CsvLoader
from trackplot.plotdata import PlotDataMap

plot_data = PlotDataMap()
result = CsvLoader().read("log.csv", plot_data, "time", None)
print(result.rows, result.columns)
```

Load a ULog file:

```python
from trackplot.plotdata import PlotDataMap
from trackplot.ulog_parser import load_ulog

plot_data = PlotDataMap()
parser = load_ulog("flight.ulg", plot_data)
print(sorted(plot_data.numeric))
print(parser.info)
```

## What it does not do

trackplot is a library only. It has no command-line program and no windows
or plotting of its own. The series are for you to draw with a tool of your
choice.

It does not receive data over the network. `SampleStreamer` is the only
source of live data, and its data is synthetic.

Custom functions run Python callables. The `function` text kept in a
`SnippetData` is stored and written to XML, but it is never executed.