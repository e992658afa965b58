import time

import pytest


class Inbox:
    """Accumulates packets from a Socket.IO test client across polls."""

    def __init__(self, sio):
        self.sio = sio
        self.packets = []

    def drain(self):
        self.packets.extend(self.sio.get_received())
        return self.packets

    def payloads(self, name):
        self.drain()
        return [pkt['args'][0] if pkt['args'] else None for pkt in self.packets if pkt['name'] == name]

    def wait_for(self, name, count=1, timeout=3.0):
        deadline = time.time() + timeout
        while time.time() < deadline:
            found = self.payloads(name)
            if len(found) >= count:
                return found
            time.sleep(0.02)
        return self.payloads(name)


@pytest.fixture()
def admin(sio_factory):
    return Inbox(sio_factory())


def _room_code(admin):
    admin.sio.emit('getCode')
    return admin.payloads('code')[-1]


def _join(inbox, nickname, code, team='1', role='guesser'):
    inbox.sio.emit('join', {'nickname': nickname, 'code': code, 'team': team, 'role': role})


def test_index_and_health(client):
    res = client.get('/')
    assert res.status_code == 200
    assert b'Running' in res.data

    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json() == {'ok': True, 'phase': 'idle', 'players': 0}


def test_question_bank_served_from_data_dir(client):
    res = client.get('/data/catch_questions.json')
    assert res.status_code == 200
    assert isinstance(res.get_json(), list)
    assert client.get('/data/missing.json').status_code == 404


def test_verify_code(admin):
    code = _room_code(admin)
    assert len(code) == 4
    admin.sio.emit('verifyCode', code)
    admin.sio.emit('verifyCode', 'nope')
    assert admin.payloads('codeResult') == [True, False]


def test_join_error_on_bad_code(sio_factory, admin):
    code = _room_code(admin)
    player = Inbox(sio_factory())
    _join(player, 'amy', code + 'X', role='host')
    assert player.payloads('joinError') == ['invalid_code']
    assert player.payloads('joinSuccess') == []


def test_join_broadcasts_roster_to_admin(sio_factory, admin):
    admin.sio.emit('adminJoin')
    code = _room_code(admin)
    player = Inbox(sio_factory())
    _join(player, 'amy', code, team='2', role='host')

    assert player.payloads('joinSuccess') == [{'nickname': 'amy', 'team': '2조', 'role': 'host'}]
    roster = admin.payloads('playerList')[-1]
    assert roster['2조'] == ['amy (출제자)']
    assert set(roster) == {f'{i}조' for i in range(1, 7)}

    player.sio.emit('requestPlayerList')
    assert player.payloads('playerList')[-1]['2조'] == ['amy (출제자)']


def test_repeated_join_does_not_multiply_handlers(sio_factory, admin):
    code = _room_code(admin)
    player = Inbox(sio_factory())
    for _ in range(3):
        _join(player, 'amy', code)
    assert len(player.payloads('joinSuccess')) == 3
    assert len(player.payloads('playerList')) == 3


def test_start_game_with_one_player_is_silent(sio_factory, admin, app_and_socketio):
    flask_app, _ = app_and_socketio
    code = _room_code(admin)
    player = Inbox(sio_factory())
    _join(player, 'amy', code, role='host')

    admin.sio.emit('startGame')
    player.sio.emit('requestStartStatus')
    assert player.payloads('gameStarted') == []
    assert flask_app.extensions['catchmind'].phase == 'idle'


def test_full_round_end_to_end(sio_factory, admin):
    admin.sio.emit('adminJoin')
    code = _room_code(admin)
    host = Inbox(sio_factory())
    guesser = Inbox(sio_factory())
    _join(host, 'amy', code, team='1', role='host')
    _join(guesser, 'bob', code, team='1', role='guesser')

    admin.sio.emit('startGame')
    start_at = admin.payloads('gameStarted')[0]['startAt']
    assert host.payloads('gameStarted') == [{'startAt': start_at}]

    host_q = host.wait_for('sendQuestion')
    guess_q = guesser.wait_for('sendQuestion')
    assert host_q and guess_q
    assert host_q[0]['team'] == '1조'
    assert guess_q[0]['text'] == host_q[0]['text']
    assert 'answer' not in guess_q[0]

    # Resync re-sends the running question along with the start time.
    guesser.sio.emit('requestStartStatus')
    assert guesser.payloads('gameStarted')[-1] == {'startAt': start_at}
    assert guesser.payloads('sendQuestion')[-1] == guess_q[0]

    guesser.sio.emit('submitAnswer', host_q[0]['answer'])
    expected = {'isCorrect': True, 'nickname': 'bob', 'score': 1, 'team': '1조'}
    assert host.wait_for('answerResult') == [expected]
    assert guesser.wait_for('answerResult') == [expected]

    next_host_q = host.wait_for('sendQuestion', count=2)
    next_guess_q = guesser.wait_for('sendQuestion', count=3)
    assert len(next_guess_q) == 3
    assert next_host_q[1]['text'] != host_q[0]['text']
    assert next_guess_q[-1]['text'] == next_host_q[1]['text']

    # Wrong guess in the new window; dict payloads are accepted too.
    guesser.sio.emit('submitAnswer', {'answer': 'surely not it'})
    assert guesser.wait_for('answerResult', count=2)[1]['isCorrect'] is False

    host.sio.emit('gameTimeOver')
    final = admin.wait_for('finalResult')
    assert final[0]['1조'] == [{'nickname': 'bob', 'score': 1}]
    new_code = admin.payloads('code')[-1]
    assert new_code != code


def test_draw_relay_reaches_team_only(sio_factory, admin):
    code = _room_code(admin)
    host = Inbox(sio_factory())
    teammate = Inbox(sio_factory())
    other = Inbox(sio_factory())
    _join(host, 'amy', code, team='1', role='host')
    _join(teammate, 'bob', code, team='1')
    _join(other, 'cat', code, team='2')

    stroke = {'x0': 0, 'y0': 0, 'x1': 5, 'y1': 5, 'color': '#000'}
    host.sio.emit('draw', stroke)
    host.sio.emit('clearCanvas')
    teammate.sio.emit('draw', {'x0': 1})

    assert teammate.payloads('draw') == [stroke]
    assert len(teammate.payloads('clearCanvas')) == 1
    assert other.payloads('draw') == []
    assert host.payloads('draw') == []


def test_reset_game_broadcasts_reset_and_new_code(sio_factory, admin):
    admin.sio.emit('adminJoin')
    code = _room_code(admin)
    player = Inbox(sio_factory())
    _join(player, 'amy', code, role='host')

    admin.sio.emit('resetGame')
    assert len(admin.payloads('gameReset')) == 1
    new_code = admin.payloads('code')[-1]
    assert new_code != code
    assert len(player.payloads('gameReset')) == 1

    admin.sio.emit('requestPlayerList')
    assert admin.payloads('playerList')[-1]['1조'] == []


def test_log_level_comes_from_config(flask_app):
    import logging

    assert logging.getLogger('catchmind').level == logging.getLevelName(flask_app.config['LOG_LEVEL'].upper())
