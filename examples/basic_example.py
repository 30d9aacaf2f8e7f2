"""
Basic example of using BerryORM with an async SQLAlchemy engine.

This example demonstrates:
- Declaring entities and their relations
- Creating a graph of related rows in one call (cascade on save)
- Reading with foreign-key paths
- Deleting with cascade on delete

Environment variables:
  BERRYORM_DATABASE_URL  optional SQLAlchemy async URL, defaults to sqlite+aiosqlite:///./berryorm.db
  BERRYORM_ECHO          set to '1' to log SQL
"""

import asyncio
import logging

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table

from berryorm import BerryORM, Entity, Filter, field, load_settings, many_to_one, one_to_many, primary_key
from berryorm.storage.sql import SQLAlchemyStorage


# Tables
metadata = MetaData()

Table(
    'departments', metadata,
    Column('id', Integer, primary_key=True),
    Column('name', String(100), nullable=False),
)

Table(
    'staff', metadata,
    Column('id', Integer, primary_key=True),
    Column('name', String(100), nullable=False),
    Column('department_id', Integer, ForeignKey('departments.id')),
)


# Entities
class Department(Entity):
    __tablename__ = 'departments'
    id = primary_key(int)
    name = field(str)
    staff = one_to_many('Staff', 'department_id', cascade_save=True, cascade_delete=True)


class Staff(Entity):
    __tablename__ = 'staff'
    id = primary_key(int)
    name = field(str)
    department_id = field(int)
    department = many_to_one(Department)


async def main():
    logging.basicConfig(level=logging.INFO)
    settings = load_settings()
    storage = SQLAlchemyStorage.from_settings(settings)

    async with storage.engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    orm = BerryORM(storage)
    orm.register(Department)

    research = Department(name='Research', staff=[Staff(name='Ada'), Staff(name='Alan')])
    dept_id = await orm.create(research)
    print(f"Created department {dept_id}; staff ids {[s.id for s in research.staff]}")

    ada = (await orm.read(Staff, [Filter('name', 'Ada')], paths=['department.staff']))[0]
    print(f"{ada.name} works in {ada.department.name} with {[s.name for s in ada.department.staff]}")

    await orm.delete_by_id(Department, dept_id)
    print(f"Staff left after delete: {await orm.count(Staff)}")

    await storage.dispose()


if __name__ == "__main__":
    asyncio.run(main())
