"""
And Then? Core Development Server
"""
import os

from app import create_app

app = create_app()

if __name__ == "__main__":
    print("🚀 Starting And Then? Core...")
    app.run(
        host=os.getenv('HOST', '0.0.0.0'),
        port=int(os.getenv('PORT', '5000')),
        debug=app.config['ENV_NAME'] == 'development',
        use_reloader=True
    )
