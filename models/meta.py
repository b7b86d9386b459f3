"""
Publication schedule and genre labels of a webtoon, and the platform
languages.

Both are parsed from free text shown on the webtoon info page. Schedules fail
loudly on text they cannot read; genres never fail and fall back to
``OtherGenre`` so new platform categories do not break scraping.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

from utils.config import Config
from utils.logger import ParsingError, ValidationError


class Weekday(Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


_WEEKDAY_ABBREVIATIONS = {
    'mon': Weekday.MONDAY,
    'tue': Weekday.TUESDAY,
    'wed': Weekday.WEDNESDAY,
    'thu': Weekday.THURSDAY,
    'fri': Weekday.FRIDAY,
    'sat': Weekday.SATURDAY,
    'sun': Weekday.SUNDAY,
}


class ScheduleKind(Enum):
    SINGLE_WEEKDAY = "SingleWeekday"
    MULTIPLE_WEEKDAYS = "MultipleWeekdays"
    DAILY = "Daily"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class Schedule:
    """Release schedule of an Original webtoon."""

    kind: ScheduleKind
    weekdays: Tuple[Weekday, ...] = ()

    @classmethod
    def single(cls, day: Weekday) -> 'Schedule':
        return cls(ScheduleKind.SINGLE_WEEKDAY, (day,))

    @classmethod
    def multiple(cls, days: List[Weekday]) -> 'Schedule':
        return cls(ScheduleKind.MULTIPLE_WEEKDAYS, tuple(days))

    @classmethod
    def daily(cls) -> 'Schedule':
        return cls(ScheduleKind.DAILY)

    @classmethod
    def completed(cls) -> 'Schedule':
        return cls(ScheduleKind.COMPLETED)

    @classmethod
    def parse(cls, text: str) -> 'Schedule':
        """Parse a schedule label such as ``"Every Mon, Wed"`` or ``"Daily"``.

        Raises:
            ParsingError: if the label holds no weekday or an unknown token.
        """
        label = ' '.join((text or '').split()).lower()

        if label in ('daily', 'every day'):
            return cls.daily()
        if label in ('completed', 'complete'):
            return cls.completed()

        if label.startswith('every '):
            label = label[len('every '):]

        days: List[Weekday] = []
        for token in label.split(','):
            token = token.strip()
            if not token:
                continue
            day = _WEEKDAY_ABBREVIATIONS.get(token[:3])
            if day is None or not day.value.lower().startswith(token):
                raise ParsingError('schedule', f"unknown weekday '{token}' in '{text}'")
            if day not in days:
                days.append(day)

        if not days:
            raise ParsingError('schedule', f"no weekday found in '{text}'")
        if len(days) == 1:
            return cls.single(days[0])
        return cls.multiple(days)

    def to_json(self) -> Union[str, Dict[str, Any]]:
        if self.kind == ScheduleKind.SINGLE_WEEKDAY:
            return {self.kind.value: self.weekdays[0].value}
        if self.kind == ScheduleKind.MULTIPLE_WEEKDAYS:
            return {self.kind.value: [day.value for day in self.weekdays]}
        return self.kind.value

    @classmethod
    def from_json(cls, data: Union[str, Dict[str, Any]]) -> 'Schedule':
        if isinstance(data, str):
            return cls(ScheduleKind(data))
        (kind, value), = data.items()
        kind = ScheduleKind(kind)
        if kind == ScheduleKind.SINGLE_WEEKDAY:
            return cls.single(Weekday(value))
        return cls.multiple([Weekday(day) for day in value])

    def __str__(self) -> str:
        if self.weekdays:
            return "Every " + ", ".join(day.value for day in self.weekdays)
        return self.kind.value


class Genre(Enum):
    """Genre labels known to the platform."""

    ACTION = "Action"
    COMEDY = "Comedy"
    DRAMA = "Drama"
    FANTASY = "Fantasy"
    GRAPHIC_NOVEL = "Graphic Novel"
    HEARTWARMING = "Heartwarming"
    HISTORICAL = "Historical"
    HORROR = "Horror"
    INFORMATIVE = "Informative"
    INSPIRATIONAL = "Inspirational"
    LGBTQ = "LGBTQ+"
    MYSTERY = "Mystery"
    POST_APOCALYPTIC = "Post-Apocalyptic"
    ROMANCE = "Romance"
    ROMANTIC_FANTASY = "Romantic Fantasy"
    SCHOOL = "School"
    SCI_FI = "Sci-fi"
    SLICE_OF_LIFE = "Slice of life"
    SPORTS = "Sports"
    SUPERHERO = "Superhero"
    SUPERNATURAL = "Supernatural"
    THRILLER = "Thriller"
    TIME_SLIP = "Time-slip"
    ZOMBIES = "Zombies"


@dataclass(frozen=True)
class OtherGenre:
    """A genre label the platform uses that is not in ``Genre``."""

    label: str

    def __str__(self) -> str:
        return self.label


AnyGenre = Union[Genre, OtherGenre]


def _genre_key(label: str) -> str:
    return ''.join(ch for ch in label.lower() if ch.isalnum())


_GENRES_BY_KEY = {_genre_key(genre.value): genre for genre in Genre}
_GENRES_BY_KEY.update({
    'sf': Genre.SCI_FI,
    'scifi': Genre.SCI_FI,
    'sliceoflife': Genre.SLICE_OF_LIFE,
    'lgbtq': Genre.LGBTQ,
    'bl': Genre.LGBTQ,
    'gl': Genre.LGBTQ,
})


def parse_genre(label: str) -> AnyGenre:
    """Map a genre label to a known ``Genre``, else wrap it as ``OtherGenre``."""
    cleaned = ' '.join((label or '').split())
    return _GENRES_BY_KEY.get(_genre_key(cleaned), OtherGenre(cleaned))


def genre_to_json(genre: AnyGenre) -> Union[str, Dict[str, str]]:
    if isinstance(genre, OtherGenre):
        return {'Other': genre.label}
    return genre.value


def genre_from_json(data: Union[str, Dict[str, str]]) -> AnyGenre:
    if isinstance(data, dict):
        return OtherGenre(data['Other'])
    return Genre(data)


class Language(Enum):
    """Language editions of the platform, by their URL path segment."""

    ENGLISH = "en"
    CHINESE = "zh-hant"
    THAI = "th"
    INDONESIAN = "id"
    SPANISH = "es"
    FRENCH = "fr"
    GERMAN = "de"

    @classmethod
    def default(cls) -> 'Language':
        return cls(Config.DEFAULT_LANGUAGE)

    @classmethod
    def parse(cls, code: str) -> 'Language':
        """Look up a language by its code, ignoring case.

        Raises:
            ValidationError: if the platform has no edition in that language.
        """
        try:
            return cls((code or '').strip().lower())
        except ValueError:
            codes = ', '.join(language.value for language in cls)
            raise ValidationError(f"Unsupported language '{code}' (expected one of {codes})") from None
