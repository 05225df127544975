"""
コマンドラインインターフェース

radiko-session のクライアントを端末から操作します。
- 認証（IP自動取得・エリア指定）
- 放送局一覧・番組表の表示
- 再生復元候補・視聴履歴・お気に入り・再生速度の表示と変更
- 状態のエクスポート／インポート
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

import requests

from .client import RadikoClient, create_client
from .config import load_client_config
from .errors import RadikoAPIError, RadikoSessionError, RequestAbortedError
from .logging_config import get_logger, setup_logging
from .models import Program
from .region_mapper import RegionMapper
from .utils.datetime_utils import format_display_date, format_display_time
from .utils.network_utils import create_sync_session
from .utils.path_utils import atomic_write_text


logger = get_logger(__name__)

VERSION = "1.0.0"

# 公開IPアドレスの取得先（順に試行）
IP_LOOKUP_SERVICES = (
    ("ipapi.co", "https://ipapi.co/json/", "ip"),
    ("ip-api.com", "http://ip-api.com/json/", "query"),
)


def lookup_public_ip(timeout: int = 10) -> str:
    """公開IPアドレスを取得

    Raises:
        RadikoAPIError: 全てのサービスで取得に失敗した場合
    """
    session = create_sync_session(timeout)
    try:
        for service_name, url, field_name in IP_LOOKUP_SERVICES:
            try:
                logger.info(f"公開IPアドレスを取得中: {service_name}")
                response = session.get(url, timeout=timeout)
                response.raise_for_status()
                ip = response.json().get(field_name)
                if ip:
                    return str(ip)
            except (requests.RequestException, ValueError) as e:
                logger.warning(f"{service_name} での公開IPアドレス取得に失敗: {e}")
    finally:
        session.close()
    raise RadikoAPIError("公開IPアドレスを取得できませんでした", retry_recommended=False)


class RadikoSessionCLI:
    """radiko-session CLIクラス"""

    def __init__(self,
                 client_factory: Optional[Callable[[Optional[str]], RadikoClient]] = None,
                 ip_lookup: Callable[[], str] = lookup_public_ip):
        self.client_factory = client_factory or self._default_client_factory
        self.ip_lookup = ip_lookup

    @staticmethod
    def _default_client_factory(config_path: Optional[str]) -> RadikoClient:
        return create_client(load_client_config(config_path))

    def create_parser(self) -> argparse.ArgumentParser:
        """コマンドライン引数パーサーを作成"""
        parser = argparse.ArgumentParser(
            prog='radiko-session',
            description='radikoのセッション・再生継続を管理するツール',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
使用例:
  radiko-session auth --ip auto          # 公開IPアドレスで認証
  radiko-session auth --area 大阪        # エリアを指定して認証
  radiko-session programs TBS            # 番組表を表示
  radiko-session restore                 # 再生復元候補を表示
            """
        )
        parser.add_argument('--version', action='version', version=f'radiko-session {VERSION}')
        parser.add_argument('--config', help='設定ファイルパス', default=None)
        parser.add_argument('--verbose', '-v', action='store_true', help='詳細ログを表示')

        subparsers = parser.add_subparsers(dest='command', metavar='<command>')

        auth_parser = subparsers.add_parser('auth', help='認証')
        auth_group = auth_parser.add_mutually_exclusive_group()
        auth_group.add_argument('--ip', help='IPアドレス（autoで自動取得）')
        auth_group.add_argument('--area', help='エリアID または 都道府県名')

        stations_parser = subparsers.add_parser('stations', help='放送局一覧')
        stations_parser.add_argument('--area', help='エリアID または 都道府県名')

        programs_parser = subparsers.add_parser('programs', help='番組表')
        programs_parser.add_argument('station_id', help='放送局ID')
        programs_parser.add_argument('--type', dest='list_type', default='weekly',
                                     choices=['today', 'weekly', 'date'], help='番組表の種類')
        programs_parser.add_argument('--date', help='対象日（YYYYMMDD）')

        subparsers.add_parser('restore', help='再生復元候補')

        history_parser = subparsers.add_parser('history', help='視聴履歴')
        history_group = history_parser.add_mutually_exclusive_group()
        history_group.add_argument('--remove', nargs=2, metavar=('STATION', 'START'),
                                   help='履歴から削除')
        history_group.add_argument('--played', nargs=2, metavar=('STATION', 'START'),
                                   help='視聴済みにする')

        favorites_parser = subparsers.add_parser('favorites', help='お気に入り')
        favorites_parser.add_argument('--toggle', nargs=2, metavar=('STATION', 'TITLE'),
                                      help='お気に入りの登録／解除')

        speed_parser = subparsers.add_parser('speed', help='再生速度')
        speed_parser.add_argument('value', nargs='?', type=float, help='設定する再生速度')

        export_parser = subparsers.add_parser('export', help='状態のエクスポート')
        export_parser.add_argument('--output', '-o', help='出力ファイル（省略時は標準出力）')

        import_parser = subparsers.add_parser('import', help='状態のインポート')
        import_parser.add_argument('file', help='エクスポートしたJSONファイル')

        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        """CLIメインエントリーポイント"""
        parser = self.create_parser()
        parsed_args = parser.parse_args(args)

        if parsed_args.verbose:
            setup_logging(log_level=logging.DEBUG, console_output=True)
        else:
            setup_logging()

        if not parsed_args.command:
            parser.print_help()
            return 0

        try:
            client = self.client_factory(parsed_args.config)
            return asyncio.run(self._execute(client, parsed_args))
        except KeyboardInterrupt:
            print("\n操作がキャンセルされました")
            return 1
        except RequestAbortedError:
            print("操作が中断されました")
            return 1
        except RadikoSessionError as e:
            print(f"エラー: {e.message}")
            return 1

    async def _execute(self, client: RadikoClient, args: argparse.Namespace) -> int:
        handler = getattr(self, f"_cmd_{args.command}")
        try:
            return await handler(client, args)
        finally:
            await client.close()

    @staticmethod
    def _resolve_area(value: str) -> str:
        area_id = RegionMapper.get_area_id(value)
        if area_id is None:
            raise RadikoAPIError(f"不明なエリアです: {value}", retry_recommended=False)
        return area_id

    @staticmethod
    def _format_program(program: Program) -> str:
        start = format_display_time(program.start_time)
        end = format_display_time(program.end_time)
        if program.status.is_completed:
            mark = "済"
        elif program.status.is_in_progress:
            mark = f"{int(program.status.position)}秒"
        else:
            mark = "-"
        return (f"{format_display_date(program.start_time)} {start}-{end} "
                f"{program.station_id:8} {program.title} [{mark}]")

    # コマンド ----------------------------------------------------------

    async def _cmd_auth(self, client: RadikoClient, args: argparse.Namespace) -> int:
        if args.area:
            auth = await client.custom_authenticate(self._resolve_area(args.area))
        else:
            ip = args.ip
            if not ip or ip == 'auto':
                ip = self.ip_lookup()
            auth = await client.authenticate(ip)
        print(f"認証成功: {auth.area_id} ({client.get_auth_name()})")
        return 0

    async def _cmd_stations(self, client: RadikoClient, args: argparse.Namespace) -> int:
        area_id = self._resolve_area(args.area) if args.area else None
        stations = await client.get_stations(area_id)
        print(f"放送局一覧 ({len(stations)} 局)")
        print("-" * 50)
        for station in stations:
            print(f"{station.id:10} {station.name}")
        return 0

    async def _cmd_programs(self, client: RadikoClient, args: argparse.Namespace) -> int:
        await client.fetch_programs(args.station_id, args.list_type, args.date)
        programs_by_date = client.get_state().programs_by_date
        for date_key, programs in programs_by_date.items():
            print(f"{format_display_date(date_key)} ({len(programs)} 番組)")
            print("-" * 70)
            for program in programs:
                favorite = "★" if client.is_favorite(program) else " "
                print(f"{favorite} {self._format_program(program)}")
        return 0

    async def _cmd_restore(self, client: RadikoClient, args: argparse.Namespace) -> int:
        auth = client.get_auth_info()
        if auth is None:
            print("認証されていません。先に auth を実行してください")
            return 1
        result = await client.load_area(auth.area_id)
        if result is None:
            print("再開できる番組はありません")
            return 0
        print(f"再開候補: {self._format_program(result.program)}")
        print(f"再生位置: {int(result.program.status.position)}秒 / 再生速度: {result.speed}x")
        return 0

    async def _cmd_history(self, client: RadikoClient, args: argparse.Namespace) -> int:
        if args.remove:
            client.remove_from_history(*args.remove)
            print(f"履歴から削除しました: {' '.join(args.remove)}")
        elif args.played:
            client.mark_as_program_played(*args.played)
            print(f"視聴済みにしました: {' '.join(args.played)}")

        history = client.get_state().history
        print(f"視聴履歴 ({len(history)} 件)")
        print("-" * 70)
        for program in history:
            print(self._format_program(program))
        return 0

    async def _cmd_favorites(self, client: RadikoClient, args: argparse.Namespace) -> int:
        if args.toggle:
            station_id, title = args.toggle
            program = Program(station_id=station_id, start_time="", end_time="", title=title)
            added = client.toggle_favorite(program)
            print(f"お気に入り{'登録' if added else '解除'}: {station_id} {title}")

        favorites = client.get_state().favorites
        print(f"お気に入り ({len(favorites)} 件)")
        print("-" * 50)
        for entry in favorites:
            print(f"{entry.station_id:10} {entry.title}")
        return 0

    async def _cmd_speed(self, client: RadikoClient, args: argparse.Namespace) -> int:
        if args.value is not None:
            try:
                client.set_speed(args.value)
            except ValueError as e:
                print(f"エラー: {e}")
                return 1
        print(f"再生速度: {client.get_state().speed}x")
        return 0

    async def _cmd_export(self, client: RadikoClient, args: argparse.Namespace) -> int:
        text = client.export_data()
        if args.output:
            atomic_write_text(args.output, text)
            print(f"エクスポートしました: {args.output}")
        else:
            print(text)
        return 0

    async def _cmd_import(self, client: RadikoClient, args: argparse.Namespace) -> int:
        path = Path(args.file).expanduser()
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            print(f"ファイルを読み込めません: {path} - {e}")
            return 1
        state = client.import_data(text)
        print(f"インポートしました: 履歴 {len(state.history)} 件 / お気に入り {len(state.favorites)} 件")
        return 0


def main(args: Optional[List[str]] = None) -> int:
    return RadikoSessionCLI().run(args)


if __name__ == '__main__':
    sys.exit(main())
