"""検索エンジンの例外"""


class LocatorError(Exception):
    """検索エンジン例外の基底クラス"""


class InvalidInput(LocatorError):
    """座標・件数・検索文字列・種別などの引数が不正"""


class StoreUnavailable(LocatorError):
    """カタログストアに接続できない・タイムアウトした"""
