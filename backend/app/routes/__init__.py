# Route handlers: auth, users, mantras, likes, collections, categories, chat, health
