"""
Table definitions for organizations and donors (SQLAlchemy Core).

Donor email and impact URL carry unique constraints; they back the
duplicate checks done before insert when uploads race each other.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)

from ..models import (
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_PRIVACY_POLICY,
    DEFAULT_SECONDARY_COLOR,
    DEFAULT_THANK_YOU_MESSAGE,
)


metadata = MetaData()


organizations = Table(
    "organizations", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("logo", Text),
    Column("primary_color", String(16), nullable=False, default=DEFAULT_PRIMARY_COLOR),
    Column("secondary_color", String(16), nullable=False, default=DEFAULT_SECONDARY_COLOR),
    Column("thank_you_message", Text, nullable=False, default=DEFAULT_THANK_YOU_MESSAGE),
    Column("thank_you_video_url", Text),
    Column("default_anonymous_donors", Boolean, nullable=False, default=False),
    Column("default_show_full_name", Boolean, nullable=False, default=True),
    Column("default_show_email", Boolean, nullable=False, default=False),
    Column("default_allow_sharing", Boolean, nullable=False, default=True),
    Column("privacy_policy_text", Text, nullable=False, default=DEFAULT_PRIVACY_POLICY),
    Column("dollars_per_meal", Numeric(12, 4)),
    Column("meals_per_person", Numeric(12, 4)),
    Column("pounds_per_meal", Numeric(12, 4)),
    Column("co2_per_pound", Numeric(12, 4)),
    Column("water_per_pound", Numeric(12, 4)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


donors = Table(
    "donors", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("total_giving", Numeric(14, 2), nullable=False),
    Column("first_gift_date", Date),
    Column("last_gift_date", Date),
    Column("largest_gift", Numeric(14, 2)),
    Column("gift_count", Integer),
    Column("organization_id", Integer, ForeignKey("organizations.id"), nullable=False, index=True),
    Column("impact_url", String(32), nullable=False),
    Column("is_anonymous", Boolean),
    Column("show_full_name", Boolean),
    Column("show_email", Boolean),
    Column("allow_sharing", Boolean),
    Column("opt_out_date", Date),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("email", name="donors_email_key"),
    UniqueConstraint("impact_url", name="donors_impact_url_key"),
)
