"""
エリアIDマッピングモジュール

このモジュールはradikoのエリアID（JP1〜JP47）と表示名の変換機能を提供します。
- エリアIDから表示名（都道府県名）への変換
- 都道府県名（日本語・英語）からエリアIDへの逆引き
- 地方ごとのエリア一覧
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


# 認証前・不明なエリアの表示名
UNKNOWN_AREA_NAME = "未判定"


@dataclass(frozen=True)
class RegionInfo:
    """エリア情報"""
    area_id: str           # エリアID（JP13等）
    name: str              # 表示名（東京等）
    name_en: str           # 英語名
    region_id: str         # 地方ID


# 地方一覧（表示順）
REGIONS = [
    ("hokkaido-tohoku", "北海道・東北"),
    ("kanto", "関東"),
    ("hokuriku-koushinetsu", "北陸・甲信越"),
    ("chubu", "中部"),
    ("kinki", "近畿"),
    ("chugoku-shikoku", "中国・四国"),
    ("kyushu", "九州・沖縄"),
]

_AREAS = [
    ("JP1", "北海道", "Hokkaido", "hokkaido-tohoku"),
    ("JP2", "青森", "Aomori", "hokkaido-tohoku"),
    ("JP3", "岩手", "Iwate", "hokkaido-tohoku"),
    ("JP4", "宮城", "Miyagi", "hokkaido-tohoku"),
    ("JP5", "秋田", "Akita", "hokkaido-tohoku"),
    ("JP6", "山形", "Yamagata", "hokkaido-tohoku"),
    ("JP7", "福島", "Fukushima", "hokkaido-tohoku"),
    ("JP8", "茨城", "Ibaraki", "kanto"),
    ("JP9", "栃木", "Tochigi", "kanto"),
    ("JP10", "群馬", "Gunma", "kanto"),
    ("JP11", "埼玉", "Saitama", "kanto"),
    ("JP12", "千葉", "Chiba", "kanto"),
    ("JP13", "東京", "Tokyo", "kanto"),
    ("JP14", "神奈川", "Kanagawa", "kanto"),
    ("JP15", "新潟", "Niigata", "hokuriku-koushinetsu"),
    ("JP16", "富山", "Toyama", "hokuriku-koushinetsu"),
    ("JP17", "石川", "Ishikawa", "hokuriku-koushinetsu"),
    ("JP18", "福井", "Fukui", "hokuriku-koushinetsu"),
    ("JP19", "山梨", "Yamanashi", "hokuriku-koushinetsu"),
    ("JP20", "長野", "Nagano", "hokuriku-koushinetsu"),
    ("JP21", "岐阜", "Gifu", "chubu"),
    ("JP22", "静岡", "Shizuoka", "chubu"),
    ("JP23", "愛知", "Aichi", "chubu"),
    ("JP24", "三重", "Mie", "chubu"),
    ("JP25", "滋賀", "Shiga", "kinki"),
    ("JP26", "京都", "Kyoto", "kinki"),
    ("JP27", "大阪", "Osaka", "kinki"),
    ("JP28", "兵庫", "Hyogo", "kinki"),
    ("JP29", "奈良", "Nara", "kinki"),
    ("JP30", "和歌山", "Wakayama", "kinki"),
    ("JP31", "鳥取", "Tottori", "chugoku-shikoku"),
    ("JP32", "島根", "Shimane", "chugoku-shikoku"),
    ("JP33", "岡山", "Okayama", "chugoku-shikoku"),
    ("JP34", "広島", "Hiroshima", "chugoku-shikoku"),
    ("JP35", "山口", "Yamaguchi", "chugoku-shikoku"),
    ("JP36", "徳島", "Tokushima", "chugoku-shikoku"),
    ("JP37", "香川", "Kagawa", "chugoku-shikoku"),
    ("JP38", "愛媛", "Ehime", "chugoku-shikoku"),
    ("JP39", "高知", "Kochi", "chugoku-shikoku"),
    ("JP40", "福岡", "Fukuoka", "kyushu"),
    ("JP41", "佐賀", "Saga", "kyushu"),
    ("JP42", "長崎", "Nagasaki", "kyushu"),
    ("JP43", "熊本", "Kumamoto", "kyushu"),
    ("JP44", "大分", "Oita", "kyushu"),
    ("JP45", "宮崎", "Miyazaki", "kyushu"),
    ("JP46", "鹿児島", "Kagoshima", "kyushu"),
    ("JP47", "沖縄", "Okinawa", "kyushu"),
]

# 都道府県名の正しい接尾辞（東京都・大阪府・京都府・北海道以外は「県」）
_SUFFIX_EXCEPTIONS = {"東京": "都", "大阪": "府", "京都": "府", "北海道": ""}


class RegionMapper:
    """エリアIDマッピングクラス"""

    REGION_INFO: Dict[str, RegionInfo] = {
        area_id: RegionInfo(area_id, name, name_en, region_id)
        for area_id, name, name_en, region_id in _AREAS
    }

    @classmethod
    def get_area_name(cls, area_id: Optional[str]) -> str:
        """エリアIDから表示名を取得（不明な場合は「未判定」）"""
        region_info = cls.REGION_INFO.get(area_id) if area_id else None
        return region_info.name if region_info else UNKNOWN_AREA_NAME

    @classmethod
    def get_area_id(cls, prefecture_name: Optional[str]) -> Optional[str]:
        """都道府県名（日本語・英語、接尾辞付き可）からエリアIDを取得"""
        if not prefecture_name or not prefecture_name.strip():
            return None

        query = prefecture_name.strip()

        # エリアIDそのものが指定された場合
        if cls.validate_area_id(query.upper()):
            return query.upper()

        query_lower = query.lower()
        for info in cls.REGION_INFO.values():
            if query == info.name or query_lower == info.name_en.lower():
                return info.area_id

        # 「県」「府」「都」を除いた検索（正しい組み合わせのみ）
        for suffix in ("県", "府", "都"):
            if query.endswith(suffix):
                base_name = query[:-1]
                if not base_name:
                    return None
                if _SUFFIX_EXCEPTIONS.get(base_name, "県") != suffix:
                    return None
                for info in cls.REGION_INFO.values():
                    if info.name == base_name:
                        return info.area_id

        return None

    @classmethod
    def get_region_info(cls, area_id: str) -> Optional[RegionInfo]:
        """エリアIDから詳細情報を取得"""
        return cls.REGION_INFO.get(area_id)

    @classmethod
    def list_areas_by_region(cls) -> Dict[str, List[RegionInfo]]:
        """地方ごとのエリア一覧を取得"""
        result: Dict[str, List[RegionInfo]] = {region_id: [] for region_id, _ in REGIONS}
        for info in cls.REGION_INFO.values():
            result[info.region_id].append(info)
        return result

    @classmethod
    def validate_area_id(cls, area_id: Optional[str]) -> bool:
        """エリアIDの妥当性を確認"""
        return bool(area_id) and area_id in cls.REGION_INFO

    @classmethod
    def get_default_area_id(cls) -> str:
        """デフォルトエリアID（東京）を取得"""
        return "JP13"
