# Services package.
#
# Each module exposes focused async functions (or, for the two write-heavy
# news components, small classes) that encapsulate business logic and
# database access for one domain entity:
#
#   slug_service     : slug derivation and bounded uniqueness resolution
#   news_service     : news reads, lazy slug backfill, AggregateSynchronizer
#   category_service : CRUD + hierarchy rules for Category
#   author_service   : CRUD for Author
#   tag_service      : CRUD for Tag
#   section_service  : read-only listing of Section
#   image_service    : blob-backed image uploads for News
#
# All service functions accept an AsyncSession as their first argument so
# that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
