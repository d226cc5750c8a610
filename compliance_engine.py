import logging
from collections import deque
from datetime import datetime, time, timedelta

from daily_aggregator import DailyHourAggregator
from tachydrive.domain.errors import InfractionDataAnomaly
from tachydrive.domain.models.entities import ActivityInterval, Infraction
from tachydrive.domain.models.value_objects import ActivityType, Severity

logger = logging.getLogger(__name__)


class ComplianceEngine:
    """
    Driving and rest time compliance engine for EU Regulation 561/2006 (RSE).

    Works on the chronological interval stream of a whole card (both card
    generations already merged). A flat timeline is rebuilt from the intervals,
    per-day totals are folded into DailySummary objects, then each rule runs
    as an independent scan:

    - continuous driving: 4h30 max, then a 45 min break (or 15 min + 30 min)
    - daily driving: 9h, extendable to 10h twice per week
    - weekly driving: 56h over 7 rolling days, 90h over 14 rolling days
    - daily rest: 11h within 24h of the shift start, reducible to 9h three times per week
    - weekly rest: 45h before the 6th consecutive day with driving
    """

    # Rule codes
    CONTINUOUS_DRIVING = "CONDUITE_CONTINUE"
    DAILY_DRIVING = "CONDUITE_JOURNALIERE"
    WEEKLY_DRIVING = "CONDUITE_HEBDOMADAIRE"
    BIWEEKLY_DRIVING = "CONDUITE_BIHEBDOMADAIRE"
    DAILY_REST = "REPOS_JOURNALIER"
    WEEKLY_REST = "REPOS_HEBDOMADAIRE"
    DATA_ANOMALY = "ANOMALIE_DONNEES"

    RULE_LABELS = {
        CONTINUOUS_DRIVING: "Conduite continue",
        DAILY_DRIVING: "Conduite journalière",
        WEEKLY_DRIVING: "Conduite hebdomadaire",
        BIWEEKLY_DRIVING: "Conduite sur deux semaines",
        DAILY_REST: "Repos journalier",
        WEEKLY_REST: "Repos hebdomadaire",
        DATA_ANOMALY: "Anomalie de données",
    }

    # Thresholds in minutes
    MAX_CONTINUOUS_DRIVING = 270
    MIN_BREAK = 45
    MIN_BREAK_PART_1 = 15
    MIN_BREAK_PART_2 = 30

    MAX_DAILY_DRIVING = 540
    MAX_DAILY_DRIVING_EXTENDED = 600
    MAX_EXTENDED_DAYS_PER_WEEK = 2

    MAX_WEEKLY_DRIVING = 56 * 60
    MAX_BIWEEKLY_DRIVING = 90 * 60

    MIN_DAILY_REST = 660
    MIN_DAILY_REST_REDUCED = 540
    MAX_REDUCED_RESTS_PER_WEEK = 3
    MIN_SPLIT_REST_PART_1 = 180

    MIN_WEEKLY_REST = 45 * 60
    MAX_CONSECUTIVE_DRIVING_DAYS = 5

    # Severity policy: (upper bound in minutes, severity) bands applied to the
    # measured excess (or shortfall) of each rule; None closes the table.
    SEVERITY_POLICY = {
        CONTINUOUS_DRIVING: ((90, Severity.GRAVE), (None, Severity.TRES_GRAVE)),
        # excess over the allowance still available that day (10h while extensions remain)
        DAILY_DRIVING: ((0, Severity.LEGERE), (None, Severity.MOYENNE)),
        WEEKLY_DRIVING: ((300, Severity.MOYENNE), (None, Severity.GRAVE)),
        BIWEEKLY_DRIVING: ((600, Severity.MOYENNE), (None, Severity.GRAVE)),
        # shortfall against the regular 11h rest
        DAILY_REST: ((120, Severity.MOYENNE), (270, Severity.GRAVE), (None, Severity.TRES_GRAVE)),
        # shortfall against 45h; up to 21h short means a reduced (24h) weekly rest was taken
        WEEKLY_REST: ((1260, Severity.GRAVE), (None, Severity.TRES_GRAVE)),
        DATA_ANOMALY: ((None, Severity.LEGERE),),
    }

    def __init__(self, aggregator=None):
        self.aggregator = aggregator or DailyHourAggregator()
        self.infractions = []

    def analyze(self, intervals, day_totals=None):
        """
        Runs every rule over a card's interval stream.

        Args:
            intervals: ActivityInterval objects of all days and generations.
            day_totals: optional {date: DailySummary}; folded from the intervals when omitted.
                Only checked for data anomalies: the driving rules count the
                clipped timeline, so gen 1 / gen 2 overlap is never counted twice.

        Returns:
            Infraction list sorted by date then rule code (undated last).
        """
        self.infractions = []
        if not intervals:
            return []

        if day_totals is None:
            day_totals = self.aggregator.fold(intervals)

        timeline = self._build_timeline(intervals)
        timeline_totals = self._timeline_day_totals(timeline)

        self._check_data_anomalies(day_totals)
        self._check_continuous_driving(timeline)
        self._check_daily_driving(timeline_totals)
        self._check_rolling_driving(timeline_totals, 7, self.MAX_WEEKLY_DRIVING, self.WEEKLY_DRIVING)
        self._check_rolling_driving(timeline_totals, 14, self.MAX_BIWEEKLY_DRIVING, self.BIWEEKLY_DRIVING)
        self._check_daily_rest(timeline)
        self._check_weekly_rest(timeline, timeline_totals)

        self.infractions.sort(key=lambda inf: inf.sort_key())
        logger.debug(f"Compliance analysis: {len(timeline)} timeline segments, {len(self.infractions)} infractions")
        return list(self.infractions)

    def get_report(self):
        return [inf.to_dict() for inf in self.infractions]

    # ------------------------------------------------------------------ timeline

    def _build_timeline(self, intervals):
        """Flattens intervals into absolute-time segments, clipping overlapping generation data."""
        ordered = sorted(intervals, key=lambda iv: (iv.start, iv.card_generation))
        segments = []
        overlaps = {}

        for iv in ordered:
            start, end = iv.start, iv.end
            if segments and start < segments[-1]["end"]:
                clipped_to = min(end, segments[-1]["end"])
                overlaps[iv.date] = overlaps.get(iv.date, 0) + self._minutes(clipped_to - start)
                start = segments[-1]["end"]
                if start >= end:
                    continue
            segments.append({
                "start": start,
                "end": end,
                "type": iv.activity_type,
                "minutes": self._minutes(end - start),
            })

        for day in sorted(overlaps):
            self._report_anomaly(InfractionDataAnomaly(
                day,
                f"Données gen 1 / gen 2 qui se chevauchent le {day.isoformat()}: "
                f"{overlaps[day]} min ignorées pour l'analyse réglementaire.",
            ))

        return self._merge_timeline(segments)

    def _merge_timeline(self, timeline):
        """Merges contiguous segments of the same activity, including across midnight."""
        if not timeline:
            return []
        merged = []
        current = dict(timeline[0])

        for nxt in timeline[1:]:
            if nxt["type"] is current["type"] and nxt["start"] == current["end"]:
                current["end"] = nxt["end"]
                current["minutes"] = self._minutes(current["end"] - current["start"])
            else:
                merged.append(current)
                current = dict(nxt)
        merged.append(current)
        return merged

    def _timeline_day_totals(self, timeline):
        """Per-day DailySummary folded from the timeline, segments split at midnight."""
        pieces = []
        for seg in timeline:
            start = seg["start"]
            while start < seg["end"]:
                day = start.date()
                day_end = self._day_start(day) + timedelta(days=1)
                end = min(seg["end"], day_end)
                offset = self._minutes(start - self._day_start(day))
                pieces.append(ActivityInterval(
                    date=day,
                    start_minute=offset,
                    end_minute=offset + self._minutes(end - start),
                    activity_type=seg["type"],
                ))
                start = end
        return self.aggregator.fold(pieces)

    # ------------------------------------------------------------------ rules

    def _check_continuous_driving(self, timeline):
        """
        4h30 of driving must be followed by a 45 min break, which can be split
        into a first part of at least 15 min and a second of at least 30 min.
        Any period without driving counts as a break, unrecorded gaps included.
        """
        driving = 0
        has_first_part = False
        crossed_at = None

        for kind, minutes, start in self._driving_blocks(timeline):
            if kind is ActivityType.DRIVE:
                if driving <= self.MAX_CONTINUOUS_DRIVING < driving + minutes:
                    crossed_at = start + timedelta(minutes=self.MAX_CONTINUOUS_DRIVING - driving)
                driving += minutes
                continue

            if minutes >= self.MIN_BREAK or (has_first_part and minutes >= self.MIN_BREAK_PART_2):
                self._close_driving_stretch(driving, crossed_at)
                driving = 0
                has_first_part = False
                crossed_at = None
            elif minutes >= self.MIN_BREAK_PART_1:
                has_first_part = True

        self._close_driving_stretch(driving, crossed_at)

    def _close_driving_stretch(self, driving, crossed_at):
        if driving <= self.MAX_CONTINUOUS_DRIVING:
            return
        excess = driving - self.MAX_CONTINUOUS_DRIVING
        self._emit(
            self.CONTINUOUS_DRIVING,
            f"Conduite continue de {self._fmt_minutes(driving)} sans pause réglementaire "
            f"(max 4h30, pause de 45 min ou 15 + 30 min).",
            excess,
            crossed_at.date(),
        )

    def _driving_blocks(self, timeline):
        """Alternating (DRIVE | None, minutes, start) runs; None marks any non-driving time."""
        blocks = []
        prev_end = None
        for seg in timeline:
            if prev_end is not None and seg["start"] > prev_end:
                self._append_block(blocks, None, self._minutes(seg["start"] - prev_end), prev_end)
            kind = ActivityType.DRIVE if seg["type"] is ActivityType.DRIVE else None
            self._append_block(blocks, kind, seg["minutes"], seg["start"])
            prev_end = seg["end"]
        return blocks

    @staticmethod
    def _append_block(blocks, kind, minutes, start):
        if blocks and blocks[-1][0] is kind:
            last_kind, last_minutes, last_start = blocks[-1]
            blocks[-1] = (last_kind, last_minutes + minutes, last_start)
        else:
            blocks.append((kind, minutes, start))

    def _check_daily_driving(self, day_totals):
        """9h per calendar day; 10h tolerated at most twice per ISO week."""
        extensions_used = {}

        for day in sorted(day_totals):
            driving = day_totals[day].driving_minutes
            if driving <= self.MAX_DAILY_DRIVING:
                continue

            week = day.isocalendar()[:2]
            used = extensions_used.get(week, 0)
            can_extend = used < self.MAX_EXTENDED_DAYS_PER_WEEK

            if can_extend and driving <= self.MAX_DAILY_DRIVING_EXTENDED:
                extensions_used[week] = used + 1
                description = (
                    f"Conduite journalière de {self._fmt_minutes(driving)} au-delà de 9h: "
                    f"extension à 10h n°{used + 1}/{self.MAX_EXTENDED_DAYS_PER_WEEK} de la semaine."
                )
                allowance = self.MAX_DAILY_DRIVING_EXTENDED
            elif driving <= self.MAX_DAILY_DRIVING_EXTENDED:
                description = (
                    f"Conduite journalière de {self._fmt_minutes(driving)} dépasse la limite de 9h "
                    f"(extensions à 10h déjà utilisées {self.MAX_EXTENDED_DAYS_PER_WEEK} fois cette semaine)."
                )
                allowance = self.MAX_DAILY_DRIVING
            else:
                description = (
                    f"Conduite journalière de {self._fmt_minutes(driving)} dépasse la limite de 9h "
                    f"(10h maximum avec extension)."
                )
                allowance = self.MAX_DAILY_DRIVING_EXTENDED if can_extend else self.MAX_DAILY_DRIVING

            self._emit(self.DAILY_DRIVING, description, driving - allowance, day)

    def _check_rolling_driving(self, day_totals, window_days, limit, code):
        """
        Cumulated driving over a trailing window of `window_days` calendar days.
        One infraction per run of consecutive exceeding windows, dated at the peak window end.
        """
        if not day_totals:
            return

        first, last = min(day_totals), max(day_totals)
        window = deque()
        running = 0
        peak = None

        day = first
        while day <= last:
            summary = day_totals.get(day)
            minutes = summary.driving_minutes if summary else 0
            window.append(minutes)
            running += minutes
            if len(window) > window_days:
                running -= window.popleft()

            if running > limit:
                if peak is None or running > peak[0]:
                    peak = (running, day)
            elif peak is not None:
                self._emit_rolling(code, window_days, limit, *peak)
                peak = None
            day += timedelta(days=1)

        if peak is not None:
            self._emit_rolling(code, window_days, limit, *peak)

    def _emit_rolling(self, code, window_days, limit, driving, window_end):
        window_start = window_end - timedelta(days=window_days - 1)
        self._emit(
            code,
            f"Conduite de {driving / 60:.2f}h sur {window_days} jours glissants "
            f"(du {window_start.isoformat()} au {window_end.isoformat()}), limite {limit // 60}h.",
            driving - limit,
            window_end,
        )

    def _check_daily_rest(self, timeline):
        """
        Implements the 24h shift logic: within 24h of the first activity after the
        previous daily rest, a rest of 11h must be completed. 9h is accepted at most
        three times per ISO week; a 3h rest followed by a 9h rest counts as regular.
        Shifts whose window runs past the recorded data, or into a span without any
        record (card withdrawn), are only judged once compliant.
        """
        if not timeline:
            return

        timeline_end = timeline[-1]["end"]
        reduced_by_week = {}
        n = len(timeline)
        idx = 0

        while idx < n:
            shift_idx = next((i for i in range(idx, n) if timeline[i]["type"] is not ActivityType.REST), None)
            if shift_idx is None:
                break
            shift_start = timeline[shift_idx]["start"]
            window_end = shift_start + timedelta(hours=24)

            best, best_idx = 0, None
            split_first_part = False
            split_idx = None
            gap_idx = None
            prev_end = shift_start

            for i in range(shift_idx, n):
                seg = timeline[i]
                if seg["start"] > prev_end and prev_end < window_end:
                    # Card withdrawn: what happened until the next record is unknown
                    gap_idx = i
                    break
                if seg["start"] >= window_end:
                    break
                prev_end = seg["end"]
                if seg["type"] is not ActivityType.REST:
                    continue
                within = self._minutes(min(seg["end"], window_end) - seg["start"])
                if split_first_part and within >= self.MIN_DAILY_REST_REDUCED and split_idx is None:
                    split_idx = i
                if within > best:
                    best, best_idx = within, i
                if within >= self.MIN_SPLIT_REST_PART_1:
                    split_first_part = True

            if best >= self.MIN_DAILY_REST or split_idx is not None:
                idx = (best_idx if best >= self.MIN_DAILY_REST else split_idx) + 1
                continue

            if gap_idx is not None:
                # Same as the end of the data: the rest may go on while the card is out
                idx = gap_idx
                continue

            if window_end > timeline_end:
                # Rest may continue beyond the end of the card data
                break

            shift_day = shift_start.date()
            if best >= self.MIN_DAILY_REST_REDUCED:
                week = shift_day.isocalendar()[:2]
                reduced_by_week[week] = reduced_by_week.get(week, 0) + 1
                count = reduced_by_week[week]
                if count > self.MAX_REDUCED_RESTS_PER_WEEK:
                    self._emit(
                        self.DAILY_REST,
                        f"Repos journalier réduit de {self._fmt_minutes(best)} (n°{count} de la semaine, "
                        f"max {self.MAX_REDUCED_RESTS_PER_WEEK} repos réduits à 9h); minimum 11h.",
                        self.MIN_DAILY_REST - best,
                        shift_day,
                    )
                idx = best_idx + 1
                continue

            self._emit(
                self.DAILY_REST,
                f"Dans les 24h suivant la prise de service de {shift_start.strftime('%H:%M')}, "
                f"le plus long repos est de {self._fmt_minutes(best)} (minimum 11h, 9h si réduit).",
                self.MIN_DAILY_REST - best,
                shift_day,
            )

            # Next shift starts after the next rest long enough to be a daily rest
            next_rest = next(
                (i for i in range(shift_idx, n)
                 if timeline[i]["type"] is ActivityType.REST
                 and timeline[i]["minutes"] >= self.MIN_DAILY_REST_REDUCED),
                None,
            )
            if next_rest is None:
                break
            idx = next_rest + 1

    def _check_weekly_rest(self, timeline, day_totals):
        """
        A weekly rest of 45 consecutive hours must be taken before the 6th
        consecutive calendar day with driving. A day without driving also ends the streak.
        """
        rests = [seg for seg in timeline if seg["type"] is ActivityType.REST]
        weekly_rest_ends = sorted(seg["end"] for seg in rests if seg["minutes"] >= self.MIN_WEEKLY_REST)
        driving_days = sorted(day for day, s in day_totals.items() if s.driving_minutes > 0)

        streak = 0
        streak_start = None
        prev_day = None
        rest_pos = 0

        for day in driving_days:
            day_end = self._day_start(day) + timedelta(days=1)

            rested = False
            while rest_pos < len(weekly_rest_ends) and weekly_rest_ends[rest_pos] <= day_end:
                if prev_day is None or weekly_rest_ends[rest_pos] > self._day_start(prev_day) + timedelta(days=1):
                    rested = True
                rest_pos += 1

            if rested or prev_day is None or (day - prev_day).days != 1 or streak == 0:
                streak = 1
                streak_start = day
            else:
                streak += 1
            prev_day = day

            if streak > self.MAX_CONSECUTIVE_DRIVING_DAYS:
                longest = max(
                    (seg["minutes"] for seg in rests
                     if seg["start"] >= self._day_start(streak_start) and seg["end"] <= day_end),
                    default=0,
                )
                self._emit(
                    self.WEEKLY_REST,
                    f"{streak} jours consécutifs de conduite (du {streak_start.isoformat()} au "
                    f"{day.isoformat()}) sans repos hebdomadaire de 45h "
                    f"(plus long repos: {self._fmt_minutes(longest)}).",
                    self.MIN_WEEKLY_REST - longest,
                    day,
                )
                streak = 0

    def _check_data_anomalies(self, day_totals):
        for day in sorted(day_totals):
            summary = day_totals[day]
            minutes = (summary.driving_minutes, summary.other_work_minutes,
                       summary.availability_minutes, summary.rest_minutes)
            if any(m < 0 for m in minutes):
                self._report_anomaly(InfractionDataAnomaly(
                    day, f"Heures négatives dans le résumé du {day.isoformat()}."
                ))
            if summary.driving_minutes > 0 and summary.rest_minutes == 0:
                self._report_anomaly(InfractionDataAnomaly(
                    day,
                    f"{summary.driving_hours:.2f}h de conduite sans aucun repos enregistré "
                    f"le {day.isoformat()} (lecture de carte partielle ?).",
                ))

    # ------------------------------------------------------------------ helpers

    def _report_anomaly(self, anomaly):
        logger.warning(f"Data anomaly: {anomaly.reason}")
        self._emit(self.DATA_ANOMALY, anomaly.reason, 0, anomaly.calendar_date)

    def _emit(self, code, description, measured, day=None):
        self.infractions.append(Infraction(
            code=code,
            type=self.RULE_LABELS[code],
            description=description,
            severity=self._severity(code, measured),
            date=day,
        ))

    def _severity(self, code, measured):
        for limit, severity in self.SEVERITY_POLICY[code]:
            if limit is None or measured <= limit:
                return severity
        raise KeyError(f"No severity band for {code} ({measured} min)")

    @staticmethod
    def _minutes(delta):
        return int(delta.total_seconds() // 60)

    @staticmethod
    def _day_start(day):
        return datetime.combine(day, time())

    @staticmethod
    def _fmt_minutes(minutes):
        return f"{int(minutes) // 60}h{int(minutes) % 60:02d}"
