from types import SimpleNamespace
from typing import Optional, get_type_hints

import pytest

from bumpin import relationship_state as rs
from bumpin.errors import NotAuthorized


def row(status, requester='alice', recipient='bob'):
    return SimpleNamespace(status=status, requester_id=requester, recipient_id=recipient)


def test_state_of_reads_each_status():
    assert rs.state_of(row('pending')) == rs.Pending('alice', 'bob')
    assert rs.state_of(row('accepted')) == rs.Accepted('alice', 'bob')
    assert rs.state_of(row('rejected')) == rs.Rejected('alice', 'bob')
    with pytest.raises(ValueError):
        rs.state_of(row('blocked'))


def test_accept_is_recipient_only_and_one_way():
    pending = rs.Pending('alice', 'bob')
    assert rs.accept(pending, 'bob') == rs.Accepted('alice', 'bob')
    with pytest.raises(NotAuthorized):
        rs.accept(pending, 'alice')
    with pytest.raises(NotAuthorized):
        rs.accept(rs.Accepted('alice', 'bob'), 'bob')


def test_partition_depends_on_direction_only_while_pending():
    pending = rs.Pending('alice', 'bob')
    assert rs.partition(pending, 'alice') == 'pending_sent'
    assert rs.partition(pending, 'bob') == 'pending_received'
    accepted = rs.Accepted('alice', 'bob')
    assert rs.partition(accepted, 'alice') == rs.partition(accepted, 'bob') == 'accepted'
    assert rs.partition(rs.Rejected('alice', 'bob'), 'alice') is None


def test_partition_hints_resolve():
    assert get_type_hints(rs.partition)['return'] == Optional[str]


def test_counterpart_and_removal_rights():
    accepted = rs.Accepted('alice', 'bob')
    assert rs.counterpart(accepted, 'alice') == 'bob'
    assert rs.counterpart(accepted, 'bob') == 'alice'
    rs.ensure_can_remove(accepted, 'alice')
    rs.ensure_can_remove(rs.Pending('alice', 'bob'), 'bob')
    with pytest.raises(NotAuthorized):
        rs.ensure_can_remove(accepted, 'carol')
