import queue
import sys
import threading

import click

from pairplay import configure_logging, create_client
from pairplay.api.games import GamesApi
from pairplay.config import Config
from pairplay.controller import Phase, TERMINAL_PHASES
from pairplay.errors import GameClientError, TransportFailure
from pairplay.models import GameKind

HELP_TEXT = 'Commands: forfeit, again (rematch), refresh (after a disconnect), quit'


def _api(ctx) -> GamesApi:
    return GamesApi.from_config(Config, token=ctx.obj['token'])


@click.group()
@click.option('--token', envvar='PAIRPLAY_AUTH_TOKEN', help='Bearer token for the games service.')
@click.pass_context
def cli(ctx, token):
    """Two-player games against your partner, from the terminal."""
    configure_logging(Config)
    ctx.obj = {'token': token}


@cli.command('games')
@click.pass_context
def games_command(ctx):
    """List the games the service offers."""
    try:
        for info in _api(ctx).list_games():
            click.echo(f'{info.emoji} {info.id:<14} {info.name} - {info.description}')
    except GameClientError as exc:
        raise click.ClickException(str(exc))


@cli.command('stats')
@click.pass_context
def stats_command(ctx):
    """Show win/draw counters and streaks."""
    try:
        stats = _api(ctx).get_stats()
    except GameClientError as exc:
        raise click.ClickException(str(exc))
    click.echo(f'Games played: {stats.total_games_played}')
    for kind, counts in sorted(stats.by_kind.items()):
        click.echo(f'  {kind:<14} played={counts.played} p1={counts.player1_wins} '
                   f'p2={counts.player2_wins} draws={counts.draws}')
    streak = stats.current_win_streak
    if streak.player_id:
        click.echo(f'Current streak: {streak.player_id} x{streak.count}')
    best = stats.longest_win_streak
    if best.player_id:
        click.echo(f'Longest streak: {best.player_id} x{best.count}')


@cli.command('history')
@click.option('--page', default=1, show_default=True)
@click.option('--limit', default=20, show_default=True)
@click.pass_context
def history_command(ctx, page, limit):
    """Show past games, newest first."""
    try:
        history = _api(ctx).get_history(page=page, limit=limit)
    except GameClientError as exc:
        raise click.ClickException(str(exc))
    for session in history.games:
        if session.is_draw:
            outcome = 'draw'
        else:
            outcome = f'winner={session.winner}' if session.winner else session.status.value
        created = session.created_at.strftime('%Y-%m-%d %H:%M') if session.created_at else '?'
        click.echo(f'{created}  {session.game_kind.value:<14} {outcome}')
    click.echo(f'page {history.page}/{history.pages} ({history.total} games)')


def _read_lines(lines: 'queue.Queue[str]') -> None:
    for line in sys.stdin:
        lines.put(line.strip())
    lines.put('quit')


@cli.command('play')
@click.argument('kind', type=click.Choice([k.value for k in GameKind]))
@click.option('--me', 'self_id', required=True, help='Your player id.')
@click.option('--partner', 'partner_id', required=True, help="Your partner's player id.")
@click.pass_context
def play_command(ctx, kind, self_id, partner_id):
    """Play KIND against your partner until you quit."""
    token = ctx.obj['token']
    controller = create_client(kind, self_id, partner_id, token=token,
                               on_notice=lambda level, message: click.echo(f'[{level}] {message}'))
    try:
        controller.activate(token)
    except GameClientError as exc:
        controller.teardown()
        raise click.ClickException(str(exc))

    lines: 'queue.Queue[str]' = queue.Queue()
    threading.Thread(target=_read_lines, args=(lines,), daemon=True).start()
    click.echo(HELP_TEXT)
    shown = None
    try:
        while True:
            controller.pump()
            controller.tick()
            session = controller.session
            if session is not None and session != shown:
                shown = session
                click.echo(controller.rules.describe_state(session, controller.self_id))
                if controller.phase == Phase.ACTIVE:
                    click.echo(f'Time left: {controller.timer.format_remaining()}')
            try:
                line = lines.get(timeout=Config.TICK_INTERVAL_SEC)
            except queue.Empty:
                continue
            if not line:
                continue
            if line == 'quit':
                break
            try:
                if line == 'forfeit':
                    controller.forfeit()
                elif line == 'again':
                    controller.play_again()
                elif line == 'refresh':
                    controller.refresh(token)
                elif line == 'time':
                    click.echo(f'Time left: {controller.timer.format_remaining()}')
                elif controller.phase in TERMINAL_PHASES:
                    click.echo('Game over. Type "again" for a rematch or "quit".')
                else:
                    controller.submit_text(line)
            except TransportFailure:
                click.echo('Connection lost. Type "refresh" to reconnect.')
            except GameClientError as exc:
                click.echo(f'Error: {exc}')
    finally:
        controller.teardown()


if __name__ == '__main__':
    cli()
