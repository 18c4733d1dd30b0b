from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy import Enum as SQLEnum

from migrations.schema_migrations import build_default_clause
from models import BusinessMember, MemberRole


def test_enum_default_uses_member_name():
    assert build_default_clause(BusinessMember.__table__.c.role) == "DEFAULT 'EMPLOYEE'"


def test_scalar_defaults():
    assert build_default_clause(Column("flag", Boolean, default=True)) == "DEFAULT TRUE"
    assert build_default_clause(Column("count", Integer, default=3)) == "DEFAULT 3"
    assert build_default_clause(Column("label", String, default="none")) == "DEFAULT 'none'"
    assert build_default_clause(Column("role", SQLEnum(MemberRole), default=MemberRole.OWNER)) == "DEFAULT 'OWNER'"


def test_callable_and_missing_defaults_are_left_to_the_orm():
    assert build_default_clause(BusinessMember.__table__.c.joined_at) == ""
    assert build_default_clause(BusinessMember.__table__.c.position) == ""
