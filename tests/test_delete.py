import pytest

from berryorm import ArgumentError, Filter, NotFoundError
from tests.entities import Company, Employee, Folder, Note, OrderLine, Project, PurchaseOrder, Shipment, Tag


@pytest.mark.asyncio
async def test_delete_then_read_returns_nothing(orm):
    key = await orm.create(Company(name='Acme'))
    company = await orm.read_by_id(Company, key)
    await orm.delete(company)
    assert await orm.read_by_id(Company, key) is None


@pytest.mark.asyncio
async def test_delete_missing_key_fails(orm):
    with pytest.raises(NotFoundError) as exc:
        await orm.delete(Company(id=3, name='Ghost'))
    assert exc.value.operation == 'delete'
    with pytest.raises(NotFoundError):
        await orm.delete(Company(name='No key'))
    with pytest.raises(NotFoundError):
        await orm.delete_by_id(Company, 3)
    with pytest.raises(NotFoundError):
        await orm.delete_from_map(Company, {'id': 3})


@pytest.mark.asyncio
async def test_delete_validates_arguments(orm, storage):
    with pytest.raises(ArgumentError):
        await orm.delete(None)
    with pytest.raises(ArgumentError):
        await orm.delete_by_id(Company, None)
    with pytest.raises(ArgumentError):
        await orm.delete_from_map(Company, 3)
    assert storage.calls == []


@pytest.mark.asyncio
async def test_one_to_many_cascade_reads_children_when_not_loaded(orm):
    key = await orm.create(Company(name='Acme', employees=[Employee(name='Jo'), Employee(name='Sam')]))
    other = await orm.create(Company(name='Globex', employees=[Employee(name='Max')]))

    await orm.delete_by_id(Company, key)

    assert [e.name for e in await orm.read(Employee)] == ['Max']
    assert await orm.has_id(Company, other)


@pytest.mark.asyncio
async def test_many_to_one_cascade_removes_referenced_target(orm, storage):
    order = PurchaseOrder(reference='PO-1', shipment=Shipment(carrier='DHL'), lines=[OrderLine(sku='A'), OrderLine(sku='B')])
    key = await orm.create(order)
    assert await orm.count(Shipment) == 1
    storage.calls.clear()

    await orm.delete_from_map(PurchaseOrder, {'id': key, 'shipment_id': order.shipment_id})

    assert await orm.count(PurchaseOrder) == 0
    assert await orm.count(OrderLine) == 0
    assert await orm.count(Shipment) == 0
    deletes = [table for op, table in storage.calls if op == 'delete']
    # children before the row, the referenced target after it
    assert deletes.index('order_line') < deletes.index('purchase_order') < deletes.index('shipment')


@pytest.mark.asyncio
async def test_many_to_one_without_cascade_keeps_target(orm):
    await orm.save(Company(id=1, name='Acme'))
    emp_id = await orm.create(Employee(name='Jo', company_id=1))

    await orm.delete(await orm.read_by_id(Employee, emp_id, paths=['company']))

    assert await orm.read_by_id(Employee, emp_id) is None
    assert await orm.read_by_id(Company, 1) == Company(id=1, name='Acme')


@pytest.mark.asyncio
async def test_loaded_many_to_one_target_is_used(orm):
    key = await orm.create(PurchaseOrder(reference='PO-1', shipment=Shipment(carrier='DHL')))
    order = await orm.read_by_id(PurchaseOrder, key, paths=['shipment', 'lines'])
    assert order.shipment.carrier == 'DHL'
    assert order.lines == []

    await orm.delete(order)

    assert await orm.count(Shipment) == 0


@pytest.mark.asyncio
async def test_junction_rows_are_removed_with_the_row(orm, storage):
    project = Project(title='Apollo', members=[Employee(name='Jo'), Employee(name='Sam')])
    await orm.create(project)
    jo, sam = project.members
    assert len(storage.rows('project_member')) == 2

    await orm.delete_by_id(Employee, jo.id)

    assert storage.rows('project_member') == [{'project_id': project.id, 'employee_id': sam.id}]
    # no cascade: the project stays
    assert await orm.has_id(Project, project.id)

    await orm.delete(project)
    assert storage.rows('project_member') == []
    assert await orm.has_id(Employee, sam.id)


@pytest.mark.asyncio
async def test_cyclic_cascade_deletes_each_row_once(orm, storage):
    root_id = await orm.create(Folder(name='root'))
    a_id = await orm.create(Folder(name='a', parent_id=root_id))
    await orm.create(Folder(name='b', parent_id=root_id))
    await orm.create(Folder(name='a1', parent_id=a_id))
    storage.calls.clear()

    await orm.delete_by_id(Folder, a_id)

    assert await orm.count(Folder) == 0
    assert storage.calls.count(('delete', 'Folder')) == 4


@pytest.mark.asyncio
async def test_loaded_cyclic_graph_terminates(orm):
    root_id = await orm.create(Folder(name='root'))
    await orm.create(Folder(name='a', parent_id=root_id))
    await orm.create(Folder(name='b', parent_id=root_id))
    root = await orm.read_by_id(Folder, root_id, paths=['children'])
    for child in root.children:
        child.parent = root

    await orm.delete(root.children[0])

    assert await orm.read(Folder, [Filter('name', 'root')]) == []
    assert await orm.count(Folder) == 0


@pytest.mark.asyncio
async def test_many_to_many_cascade_reads_targets_when_not_loaded(orm, storage):
    first = Note(body='first', tags=[Tag(label='a'), Tag(label='b')])
    second = Note(body='second', tags=[Tag(label='c')])
    await orm.create(first)
    await orm.create(second)

    await orm.delete_by_id(Note, first.id)

    assert [t.label for t in await orm.read(Tag)] == ['c']
    assert storage.rows('note_tag') == [{'note_id': second.id, 'tag_id': second.tags[0].id}]
    assert await orm.has_id(Note, second.id)


@pytest.mark.asyncio
async def test_many_to_many_cascade_uses_loaded_targets(orm, storage):
    key = await orm.create(Note(body='first', tags=[Tag(label='a'), Tag(label='b')]))
    note = await orm.read_by_id(Note, key, paths=['tags'])
    assert sorted(t.label for t in note.tags) == ['a', 'b']
    storage.calls.clear()

    await orm.delete(note)

    assert await orm.count(Tag) == 0
    assert await orm.count(Note) == 0
    assert storage.rows('note_tag') == []
    # loaded targets are not read again
    assert ('read', 'note_tag') not in storage.calls
