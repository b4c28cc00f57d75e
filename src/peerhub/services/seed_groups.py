"""Canonical seed set of community groups recreated by a community reset."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from peerhub.core.errors import ValidationError
from peerhub.models import Group
from peerhub.schemas.lifecycle import SeedGroupStatus

__all__ = [
    "GroupSeed",
    "SEED_GROUPS",
    "build_seed_groups",
    "seed_group_status",
]


@dataclass(frozen=True)
class GroupSeed:
    """Name, description and external link of one seed group."""

    name: str
    description: str
    external_link: str

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Seed group name must not be empty")

    def to_group(self, created_by: str) -> Group:
        """Return a new, unsaved ``Group`` owned by ``created_by``."""
        if not created_by:
            raise ValidationError("Seed groups need a creating admin account")
        return Group(
            name=self.name,
            description=self.description,
            external_link=self.external_link,
            created_by=created_by,
            member_count=0,
            is_active=True,
        )


SEED_GROUPS: tuple[GroupSeed, ...] = (
    GroupSeed(
        name="ピアラーニングハブ生成AI部",
        description="AI技術と生成AIについて学び、実践的なプロジェクトを通じて知識を深めるコミュニティです。",
        external_link="https://discord.gg/ai-learning",
    ),
    GroupSeed(
        name="さぬきピアラーニングハブゴルフ部",
        description="香川県でのゴルフを通じた交流とネットワーキングを目的としたグループです。",
        external_link="https://line.me/ti/g/golf-sanuki",
    ),
    GroupSeed(
        name="さぬきピアラーニングハブ英語部",
        description="英語学習とスキル向上を目指すメンバーが集まるグループです。",
        external_link="https://discord.gg/english-sanuki",
    ),
    GroupSeed(
        name="WAOJEさぬきピアラーニングハブ交流会参加者",
        description="WAOJE（世界青年機構）の交流会参加者向けのコミュニティです。",
        external_link="https://waoje.org/sanuki-hub",
    ),
    GroupSeed(
        name="香川イノベーションベース",
        description="香川県でのイノベーションとスタートアップ活動を支援するコミュニティです。",
        external_link="https://kagawa-innovation.jp/join",
    ),
    GroupSeed(
        name="さぬきピアラーニングハブ居住者",
        description="香川県に住むピアラーニングハブメンバーの地域コミュニティです。",
        external_link="https://telegram.me/sanuki-residents",
    ),
    GroupSeed(
        name="英語キャンプ卒業者",
        description="英語キャンププログラムを修了したメンバーのアルムナイネットワークです。",
        external_link="https://discord.gg/english-camp-alumni",
    ),
)


def build_seed_groups(
    created_by: str,
    seeds: Iterable[GroupSeed] = SEED_GROUPS,
) -> list[Group]:
    """Return unsaved ``Group`` rows for ``seeds`` in catalogue order."""
    return [seed.to_group(created_by) for seed in seeds]


def seed_group_status(
    existing_names: Iterable[str],
    seeds: Iterable[GroupSeed] = SEED_GROUPS,
) -> SeedGroupStatus:
    """Split the seed catalogue into groups that exist and groups that are missing."""
    present = set(existing_names)
    required = [seed.name for seed in seeds]
    return SeedGroupStatus(
        existing_groups=[name for name in required if name in present],
        missing_groups=[name for name in required if name not in present],
    )
