"""
CSV reporter: one row per (bucket, status) plus an informational block.
"""
from __future__ import annotations

import csv

from route_metrics_core.processor.results import RunSummary
from route_metrics_core.reporters.base import BaseReporter, f2, fmt_number, iso


class CsvReporter(BaseReporter):
    def report_overall(self) -> None:
        count = len(self.overall.runs)
        noun = 'summary' if count == 1 else 'summaries'
        self.info(f'[[read {count} {noun} ({self.overall.lines_read} lines, '
                  f'{self.overall.char_count} chars) from {self.overall.file}]]')
        if self.overall.parse_errors:
            self.info(f'[[parse errors: {self.overall.parse_errors.count} lines]]')

    def report_run(self, run: RunSummary) -> None:
        rmr = run.results
        self.info(f'[start {iso(rmr.earliest_timestamp)}, end {iso(rmr.latest_timestamp)}]')

        groups = self.group(run)
        self.info(f'[total time measurements {groups.observation_count} across {len(groups.buckets)} routes]')

        prefix = self.options.agent_patch_prefix
        agent = next((name for name in rmr.patch.names() if name.startswith(prefix)), None)
        if agent:
            self.info(f'[{agent} loaded]')

        gc_info = ''
        if rmr.gc.count:
            gc_info = f' (gc count {fmt_number(rmr.gc.total_count)} gc time {fmt_number(rmr.gc.total_time)})'
        self.info(f'[time-series lines processed {rmr.time_series_count}{gc_info}]')
        if rmr.parse_errors:
            self.info(f'[parse errors: {rmr.parse_errors.count} lines]')

        ladder = ', '.join(fmt_number(p) for p in self.percentiles)
        self.stream.write(f'route, status, n, mean, stddev, percentiles: {ladder}\n')
        writer = csv.writer(self.stream, lineterminator='\n')
        for bucket, statuses in groups.items():
            for status, times in statuses.items():
                s = self.bucket_stats(self.convert(times))
                row = [bucket, str(status), str(s.n), f2(s.mean), f2(s.stddev)]
                row.extend(fmt_number(p) for p in s.percentiles)
                writer.writerow(row)
        self.stream.write('\n')
