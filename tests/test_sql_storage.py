import pytest

from berryorm import BerryORM, Filter, Settings
from berryorm.storage.sql import SQLAlchemyStorage
from tests.entities import ALL_ENTITIES, Company, Country, Employee, EmployeeType, Project


@pytest.fixture
def sql_storage(engine):
    return SQLAlchemyStorage(engine)


@pytest.fixture
def sql_orm(sql_storage):
    orm = BerryORM(sql_storage)
    orm.register(*ALL_ENTITIES)
    return orm


@pytest.mark.asyncio
async def test_storage_port_roundtrip(sql_storage):
    key = await sql_storage.create('company', 'company_id', ['name'], {'company_id': None, 'name': 'Acme'})
    assert key is not None
    given = await sql_storage.create('company', 'company_id', ['name'], {'company_id': 40, 'name': 'Globex'})
    assert given == 40

    assert await sql_storage.count('company') == 2
    assert await sql_storage.count('company', [Filter('name', 'Globex')]) == 1
    rows = await sql_storage.read('company', ['company_id', 'name'], [Filter('company_id', key)], 1)
    assert rows == [{'company_id': key, 'name': 'Acme'}]
    assert len(await sql_storage.read('company', ['name'], limit=1)) == 1

    assert await sql_storage.update('company', 'company_id', ['name'], {'company_id': key, 'name': 'Acme Corp'}) == key
    assert (await sql_storage.read('company', ['name'], [Filter('company_id', key)]))[0]['name'] == 'Acme Corp'

    await sql_storage.delete('company', [Filter('company_id', key)])
    assert await sql_storage.count('company') == 1
    await sql_storage.delete('company')
    assert await sql_storage.count('company') == 0


@pytest.mark.asyncio
async def test_junction_insert_returns_none(sql_storage):
    assert await sql_storage.create(
        'project_member', None, ['project_id', 'employee_id'], {'project_id': 1, 'employee_id': 2}
    ) is None
    assert await sql_storage.read('project_member', ['project_id', 'employee_id']) == [
        {'project_id': 1, 'employee_id': 2}
    ]


@pytest.mark.asyncio
async def test_company_employee_scenario(sql_orm):
    await sql_orm.save(Company(id=1, name='Acme'))

    emp_id = await sql_orm.create(Employee(name='Jo', company_id=1))
    assert emp_id == 1

    emp = await sql_orm.read_by_id(Employee, 1, paths=['company'])
    assert emp == Employee(id=1, name='Jo', company_id=1)
    assert emp.company == Company(id=1, name='Acme')


@pytest.mark.asyncio
async def test_cascading_graph(sql_orm):
    engineer = EmployeeType(title='Engineer')
    company = Company(
        name='Acme',
        employees=[Employee(name='Jo', employee_type=engineer), Employee(name='Sam')],
    )
    key = await sql_orm.create(company)

    (acme,) = await sql_orm.read(Company, [Filter('id', key)], paths=['employees.employee_type'])
    by_name = {e.name: e for e in acme.employees}
    assert set(by_name) == {'Jo', 'Sam'}
    assert by_name['Jo'].employee_type == EmployeeType(id=engineer.id, title='Engineer')
    assert by_name['Sam'].employee_type is None

    await sql_orm.delete(acme)
    assert await sql_orm.count(Company) == 0
    assert await sql_orm.count(Employee) == 0
    # not flagged for cascade delete
    assert await sql_orm.count(EmployeeType) == 1


@pytest.mark.asyncio
async def test_many_to_many(sql_orm, sql_storage):
    project = Project(title='Apollo', members=[Employee(name='Jo'), Employee(name='Sam')])
    key = await sql_orm.save(project)
    # saving again does not duplicate junction rows
    await sql_orm.save(project)
    assert await sql_storage.count('project_member', [Filter('project_id', key)]) == 2

    apollo = await sql_orm.read_by_id(Project, key, paths=['members.projects'])
    assert sorted(m.name for m in apollo.members) == ['Jo', 'Sam']
    assert all([p.title for p in m.projects] == ['Apollo'] for m in apollo.members)

    await sql_orm.delete(apollo)
    assert await sql_storage.count('project_member') == 0
    assert await sql_orm.count(Employee) == 2


@pytest.mark.asyncio
async def test_string_primary_key(sql_orm):
    assert await sql_orm.save(Country(code='NL', name='Netherlands')) == 'NL'
    assert await sql_orm.save(Country(code='NL', name='Nederland')) == 'NL'
    assert await sql_orm.read(Country) == [Country(code='NL', name='Nederland')]
    await sql_orm.delete_by_id(Country, 'NL')
    assert not await sql_orm.has_id(Country, 'NL')


@pytest.mark.asyncio
async def test_from_settings(tmp_path):
    storage = SQLAlchemyStorage.from_settings(Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}"))
    try:
        assert storage.engine.url.drivername == 'sqlite+aiosqlite'
        assert storage.engine.echo is False
    finally:
        await storage.dispose()
