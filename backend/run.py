from voxelrooms import create_app, socketio

app = create_app()
 
if __name__ == '__main__':
    # Threaded server so every open event stream gets its own worker
    socketio.run(app, host=app.config['HOST'], port=app.config['PORT'], allow_unsafe_werkzeug=True)
