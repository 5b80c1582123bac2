"""HTTP routers, one module per resource."""

from . import admins, articles, categories, news, newsletters, notifications, users

ROUTERS = [
    admins.router,
    articles.router,
    categories.router,
    news.router,
    newsletters.router,
    notifications.router,
    users.router,
]
