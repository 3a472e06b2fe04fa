"""Forms for the Open Play event blueprint.

The blueprint speaks JSON; Flask-WTF reads ``request.get_json()`` as form data.
"""

from flask_wtf import FlaskForm
from wtforms import (
    DateField,
    FloatField,
    IntegerField,
    SelectField,
    StringField,
    ValidationError,
)
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from openplay.core.constants import (
    DEFAULT_TOURNAMENT_TIER,
    EARLIEST_START_HOUR,
    LATEST_END_HOUR,
    MAX_PLAYERS,
    MAX_SCORE_LENGTH,
    MIN_PLAYERS,
    TOURNAMENT_TIERS,
)


class JSONForm(FlaskForm):
    """Base form for API payloads, which carry no CSRF token."""

    class Meta:
        csrf = False

    def first_error(self):
        """Return the first validation message, prefixed by its field label."""
        for field in self:
            if field.errors:
                return f"{field.label.text}: {field.errors[0]}"
        return "Invalid request."


class EventForm(JSONForm):
    """Form for creating an Open Play event."""

    event_date = DateField("Event Date", validators=[DataRequired()])
    start_time = IntegerField(
        "Start Time",
        validators=[
            InputRequired(),
            NumberRange(min=EARLIEST_START_HOUR, max=LATEST_END_HOUR),
        ],
    )
    end_time = IntegerField(
        "End Time",
        validators=[
            InputRequired(),
            NumberRange(min=EARLIEST_START_HOUR, max=LATEST_END_HOUR),
        ],
    )
    title = StringField("Title", validators=[Optional(), Length(min=5, max=200)])
    description = StringField(
        "Description", validators=[Optional(), Length(min=10, max=1000)]
    )
    player_fee = FloatField(
        "Player Fee", default=0.0, validators=[Optional(), NumberRange(min=0)]
    )
    max_players = IntegerField(
        "Max Players",
        default=MAX_PLAYERS,
        validators=[Optional(), NumberRange(min=MIN_PLAYERS, max=MAX_PLAYERS)],
    )
    tournament_tier = SelectField(
        "Tournament Tier",
        choices=[(tier, tier) for tier in TOURNAMENT_TIERS],
        default=DEFAULT_TOURNAMENT_TIER,
        validators=[Optional()],
    )

    def validate_end_time(self, field):
        """Validate that the event ends after it starts."""
        if field.data is None or self.start_time.data is None:
            return
        if field.data <= self.start_time.data:
            raise ValidationError("End time must be after start time.")


class EventUpdateForm(JSONForm):
    """Form for editing a draft event. Every field is optional."""

    event_date = DateField("Event Date", validators=[Optional()])
    start_time = IntegerField(
        "Start Time",
        validators=[
            Optional(),
            NumberRange(min=EARLIEST_START_HOUR, max=LATEST_END_HOUR),
        ],
    )
    end_time = IntegerField(
        "End Time",
        validators=[
            Optional(),
            NumberRange(min=EARLIEST_START_HOUR, max=LATEST_END_HOUR),
        ],
    )
    title = StringField("Title", validators=[Optional(), Length(min=5, max=200)])
    description = StringField(
        "Description", validators=[Optional(), Length(min=10, max=1000)]
    )
    player_fee = FloatField("Player Fee", validators=[Optional(), NumberRange(min=0)])
    max_players = IntegerField(
        "Max Players",
        validators=[Optional(), NumberRange(min=MIN_PLAYERS, max=MAX_PLAYERS)],
    )
    tournament_tier = SelectField(
        "Tournament Tier",
        choices=[(tier, tier) for tier in TOURNAMENT_TIERS],
        validators=[Optional()],
    )

    def changes(self):
        """Return the fields present in the payload, keyed by field name."""
        return {
            field.name: field.data
            for field in self
            if field.raw_data and field.data not in (None, "")
        }


class VoteForm(JSONForm):
    """Form for a player's own vote."""

    option = StringField("Option", validators=[DataRequired(), Length(max=50)])


class AdminVoteForm(VoteForm):
    """Form for a vote cast on behalf of a player."""

    user_id = StringField("Player", validators=[DataRequired()])


class MatchResultForm(JSONForm):
    """Form for recording the result of a match."""

    winning_team = IntegerField(
        "Winning Team", validators=[InputRequired(), NumberRange(min=1, max=2)]
    )
    score = StringField(
        "Score", validators=[Optional(), Length(max=MAX_SCORE_LENGTH)]
    )
