"""Tables backing tests/entities.py for the SQL storage tests."""

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table

metadata = MetaData()

company = Table(
    'company', metadata,
    Column('company_id', Integer, primary_key=True, autoincrement=True),
    Column('name', String(100)),
)

employee_type = Table(
    'employee_type', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('title', String(100)),
)

employee = Table(
    'employee', metadata,
    Column('employee_id', Integer, primary_key=True, autoincrement=True),
    Column('name', String(100)),
    Column('company_id', Integer, ForeignKey('company.company_id')),
    Column('employee_type_id', Integer, ForeignKey('employee_type.id')),
)

project = Table(
    'project', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('title', String(100)),
)

project_member = Table(
    'project_member', metadata,
    Column('project_id', Integer, ForeignKey('project.id'), primary_key=True),
    Column('employee_id', Integer, ForeignKey('employee.employee_id'), primary_key=True),
)

shipment = Table(
    'shipment', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('carrier', String(100)),
)

purchase_order = Table(
    'purchase_order', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('reference', String(100)),
    Column('shipment_id', Integer, ForeignKey('shipment.id')),
)

order_line = Table(
    'order_line', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('sku', String(100)),
    Column('order_id', Integer, ForeignKey('purchase_order.id')),
)

country = Table(
    'Country', metadata,
    Column('code', String(8), primary_key=True),
    Column('name', String(100)),
)

folder = Table(
    'Folder', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('name', String(100)),
    Column('parent_id', Integer),
)

note = Table(
    'note', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('body', String(200)),
)

tag = Table(
    'tag', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('label', String(50)),
)

note_tag = Table(
    'note_tag', metadata,
    Column('note_id', Integer, ForeignKey('note.id'), primary_key=True),
    Column('tag_id', Integer, ForeignKey('tag.id'), primary_key=True),
)
