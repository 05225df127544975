"""
radiko-session テストパッケージ

テスト構造:
- test_models.py: データモデル・再生状態のテスト
- test_retry.py: リトライ処理のテスト
- test_storage.py: 永続化層のテスト
- test_state.py: 状態ストアのテスト
- test_api_client.py: APIクライアントのテスト
- test_auth.py: 認証管理のテスト
- test_history.py: 視聴履歴のテスト
- test_restoration.py: 再生復元のテスト
- test_client.py: 窓口クラスのテスト
- test_autosave.py: 再生位置自動保存のテスト
- test_config.py: 設定管理のテスト
- test_region_mapper.py: エリアIDマッピングのテスト
- test_cli.py: コマンドラインのテスト
"""
